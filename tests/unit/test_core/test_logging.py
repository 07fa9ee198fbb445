"""
test_logging.py - build log tests

Checks:
- warning context fields
- omitted templates recorded
- saved file round trip
"""

import json
from pathlib import Path

from coursedocs.core.logging import (
    complete_build_log,
    create_build_log,
    emit_warning,
    record_generated,
    record_omitted,
    save_build_log,
)
from coursedocs.domain.errors import ErrorCodes

# =============================================================================
# create / record
# =============================================================================


class TestCreateBuildLog:
    def test_initial_state(self):
        log = create_build_log("CRS-1")

        assert log.course_id == "CRS-1"
        assert log.build_id.startswith("BLD-")
        assert log.started_at
        assert log.result == "pending"
        assert log.generated == []
        assert log.omitted == []
        assert log.warnings == []


class TestRecord:
    def test_generated_and_omitted(self):
        log = create_build_log("CRS-1")
        record_generated(log, "root/Documenti/Verbale_CRS-1.docx")
        record_omitted(log, "modello_a_fad", "Documenti")

        assert log.generated == ["root/Documenti/Verbale_CRS-1.docx"]
        assert log.omitted == [{"template_id": "modello_a_fad", "folder": "Documenti"}]

    def test_warning_has_required_fields(self):
        log = create_build_log("CRS-1")
        emit_warning(
            log,
            code=ErrorCodes.UNKNOWN_TEMPLATE_ID,
            message="not registered",
            template_id="ghost",
            folder="Documenti",
        )

        warning = log.warnings[0].to_dict()
        assert warning == {
            "level": "warning",
            "code": ErrorCodes.UNKNOWN_TEMPLATE_ID,
            "template_id": "ghost",
            "folder": "Documenti",
            "message": "not registered",
        }


# =============================================================================
# complete
# =============================================================================


class TestCompleteBuildLog:
    def test_success(self):
        log = create_build_log("CRS-1")
        complete_build_log(log, success=True)

        assert log.result == "success"
        assert log.finished_at is not None
        assert log.error_code is None

    def test_failure(self):
        log = create_build_log("CRS-1")
        complete_build_log(
            log, success=False, error_code=ErrorCodes.ARCHIVE_FAILED, error_context={"root": "x"}
        )

        assert log.result == "failed"
        assert log.error_code == ErrorCodes.ARCHIVE_FAILED
        assert log.error_context == {"root": "x"}


# =============================================================================
# save / load
# =============================================================================


class TestSaveBuildLog:
    def test_save_creates_directory(self, tmp_path: Path):
        log = create_build_log("CRS-1")
        path = save_build_log(log, tmp_path / "logs")

        assert path.exists()
        assert path.name == f"build_{log.build_id}.json"

    def test_round_trip(self, tmp_path: Path):
        log = create_build_log("CRS-1")
        record_generated(log, "a/b.docx")
        emit_warning(log, ErrorCodes.TEMPLATE_OMITTED, "dup", "t", "Documenti")
        complete_build_log(log, success=True)

        loaded = json.loads(save_build_log(log, tmp_path).read_text(encoding="utf-8"))
        assert loaded == json.loads(json.dumps(log.to_dict()))
        assert loaded["warnings"][0]["code"] == ErrorCodes.TEMPLATE_OMITTED
