"""Tests for submission outcome models."""

import pytest

from src.models.submission import ErrorCategory, Notification, SubmissionResult, UploadProgress


@pytest.mark.unit
def test_submission_result_defaults():
    result = SubmissionResult(ok=True)

    assert result.listing_id is None
    assert result.error_category is None
    assert result.warnings == []


@pytest.mark.unit
def test_submission_result_serializes_category():
    result = SubmissionResult(
        ok=False,
        notification=Notification(message="Images not uploaded"),
        error_category=ErrorCategory.UPLOAD,
    )
    payload = result.model_dump(mode="json")

    assert payload["error_category"] == "upload"
    assert payload["notification"] == {"level": "error", "message": "Images not uploaded"}


@pytest.mark.unit
def test_upload_progress_percent():
    assert UploadProgress(path="p", state="running", bytes_transferred=25, total_bytes=100).percent == 25.0
    assert UploadProgress(path="p", state="success").percent == 100.0
    assert UploadProgress(path="p", state="running").percent == 0.0
