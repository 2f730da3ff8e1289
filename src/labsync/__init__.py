# ============================================================================
# src/labsync/__init__.py
# ============================================================================
"""
LabSync

Medical report ingestion: file type detection, text acquisition, report
classification, lab parameter extraction, standardization and AI analysis.
"""

__version__ = "3.0.0"
