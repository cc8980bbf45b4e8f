"""Tests for the constant catalogs and error-code table."""

import pytest

from timeline_engine.constants.catalogs import (
    COLOR_PRESETS,
    LUTS,
    MAX_FILE_SIZES,
    create_default_lut_metadata,
    get_default_lut,
    get_transition,
    list_transitions,
)
from timeline_engine.constants.error_codes import get_error_spec
from timeline_engine.exceptions import QueueExhaustedError, RemoteSaveError


class TestTransitions:
    def test_lookup(self):
        fade = get_transition("fade")
        assert fade.category == "fade"
        assert fade.duration == 1.0
        assert get_transition("nope") is None

    def test_filter_by_category(self):
        wipes = list_transitions("wipe")
        assert {t.id for t in wipes} >= {"wipeleft", "wipetl"}
        assert all(t.category == "wipe" for t in wipes)
        assert len(list_transitions()) > len(wipes)


class TestLuts:
    def test_default_lut(self):
        lut = get_default_lut()
        assert lut.id == "signature-grade"
        assert create_default_lut_metadata() == {
            "name": "Signature Professional Grade",
            "lut_id": "signature-grade",
            "cube_file": "/luts/base/signature-grade.cube",
            "intensity": 1.0,
        }

    def test_presets_reference_known_luts(self):
        assert set(COLOR_PRESETS) <= set(LUTS)

    def test_catalogs_are_read_only(self):
        with pytest.raises(TypeError):
            MAX_FILE_SIZES["video"] = 1


class TestErrorCodes:
    def test_unknown_code_falls_back(self):
        assert get_error_spec("NOT_A_CODE") == get_error_spec("INTERNAL_ERROR")

    def test_exception_dict(self):
        data = RemoteSaveError(status_code=502).to_dict()
        assert data["code"] == "REMOTE_SAVE_FAILED"
        assert data["retryable"] is True
        assert data["message"] == "Save failed: HTTP 502"

    def test_exhaustion_is_terminal(self):
        error = QueueExhaustedError("timeline_1", 10)
        assert not error.retryable
        assert error.message == "Max retries exceeded (10 attempts) for project timeline_1"
