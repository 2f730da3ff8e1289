from .standardizer import ReportStandardizer

__all__ = ['ReportStandardizer']
