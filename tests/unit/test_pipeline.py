# ============================================================================
# FILE: tests/unit/test_pipeline.py
# ============================================================================
"""
Unit tests for the report processing pipeline
"""

import threading
from unittest.mock import Mock

import pytest

from labsync.ai.analysis import AnalysisOrchestrator
from labsync.constants.report_types import FileType, ParameterStatus, ReportType
from labsync.core.models import ReportStatus, UploadedFile
from labsync.pipeline import ReportMetadata, ReportPipeline
from labsync.processing.text_acquirer import TextAcquirer
from labsync.storage import is_valid_report_id
from labsync.utils.exceptions import UnsupportedFileTypeError, ValidationError


def make_pipeline(client=None, store=None, ocr_text=""):
    ocr = Mock()
    ocr.extract.return_value = ocr_text
    return ReportPipeline(
        acquirer=TextAcquirer(ocr_extractor=ocr),
        orchestrator=AnalysisOrchestrator(client=client, ocr_extractor=ocr),
        store=store,
    )


def text_upload(text, name="blood_work.txt"):
    return UploadedFile(name, "text/plain", text.encode("utf-8"))


@pytest.mark.asyncio
async def test_text_upload_end_to_end(fake_client, report_store, sample_cbc_text):
    pipeline = make_pipeline(client=fake_client, store=report_store)

    report = await pipeline.process(
        text_upload(sample_cbc_text),
        ReportMetadata(patient_name="Jane Doe", provider="Dr. Smith"),
    )

    assert is_valid_report_id(report.id)
    assert report.type == ReportType.CBC
    assert report.file_type == FileType.TEXT
    assert report.title == "blood_work"
    assert report.status == ReportStatus.COMPLETED
    assert report.analysis.source == "ai"
    assert report.patient_name == "Jane Doe"

    wbc = next(p for p in report.results if p.name == "White Blood Cell Count")
    assert wbc.status == ParameterStatus.HIGH

    stored = report_store.get(report.id)
    assert stored.status == ReportStatus.COMPLETED
    assert stored.results == report.results


@pytest.mark.asyncio
async def test_caller_report_type_overrides_classifier(sample_cbc_text):
    report = await make_pipeline().process(
        text_upload(sample_cbc_text),
        ReportMetadata(report_type="Lipid Panel", title="Annual"),
    )

    assert report.type == ReportType.LIPID_PANEL
    assert report.title == "Annual"


@pytest.mark.asyncio
async def test_no_client_completes_with_fallback(sample_thyroid_text):
    report = await make_pipeline(client=None).process(text_upload(sample_thyroid_text))

    assert report.status == ReportStatus.COMPLETED
    assert report.analysis.is_fallback


@pytest.mark.asyncio
async def test_failing_client_completes_with_errors(failing_client, sample_thyroid_text):
    report = await make_pipeline(client=failing_client).process(text_upload(sample_thyroid_text))

    assert report.status == ReportStatus.COMPLETED_WITH_ERRORS
    assert report.analysis.is_fallback
    assert [p.name for p in report.results] == ["TSH", "Free T4"]


@pytest.mark.asyncio
async def test_dicom_upload_keeps_metadata_parameters():
    upload = UploadedFile("chest_ct.dcm", "application/dicom", b"\x00" * 4096)
    report = await make_pipeline().process(upload)

    assert report.type == ReportType.IMAGING
    assert [p.name for p in report.results] == ["Modality", "Body Part", "File Size"]
    assert report.results[0].value == "CT"


@pytest.mark.asyncio
async def test_image_upload_gets_image_analysis(fake_client, sample_imaging_text):
    pipeline = make_pipeline(client=fake_client, ocr_text=sample_imaging_text)
    report = await pipeline.process(UploadedFile("chest.png", "image/png", b"\x89PNG"))

    assert report.type == ReportType.IMAGING
    assert report.analysis.image_analysis is not None


@pytest.mark.asyncio
async def test_ocr_runs_off_the_event_loop(sample_imaging_text):
    threads = []

    def read_image(data):
        threads.append(threading.get_ident())
        return sample_imaging_text

    ocr = Mock()
    ocr.extract.side_effect = read_image
    pipeline = ReportPipeline(
        acquirer=TextAcquirer(ocr_extractor=ocr),
        orchestrator=AnalysisOrchestrator(client=None, ocr_extractor=ocr),
    )

    await pipeline.process(UploadedFile("chest.png", "image/png", b"\x89PNG"))
    await pipeline.orchestrator.analyze_image(b"\x89PNG")

    assert len(threads) == 2
    assert threading.get_ident() not in threads


@pytest.mark.asyncio
async def test_empty_upload_rejected():
    with pytest.raises(ValidationError):
        await make_pipeline().process(UploadedFile("empty.txt", "text/plain", b""))


@pytest.mark.asyncio
async def test_unknown_file_type_rejected():
    with pytest.raises(UnsupportedFileTypeError) as exc_info:
        await make_pipeline().process(UploadedFile("archive.zip", "application/zip", b"PK"))
    assert exc_info.value.status_code == 400
