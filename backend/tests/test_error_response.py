import logging
import pytest
from fastapi import HTTPException

from stagebook.utils.errors import Conflict, NotFound, error_response


def test_error_response_logs(caplog):
    caplog.set_level(logging.ERROR, logger="stagebook.utils.errors")
    with pytest.raises(HTTPException):
        raise error_response("Invalid", {"field": "bad"})
    assert any(
        "Invalid" in r.getMessage() and "'field': 'bad'" in r.getMessage()
        for r in caplog.records
    )


def test_workflow_errors_carry_status_and_detail():
    err = Conflict("Already signed", {"party": "already signed"})
    assert err.status_code == 409
    assert err.to_detail() == {
        "message": "Already signed",
        "field_errors": {"party": "already signed"},
        "code": "conflict",
    }
    assert NotFound("gone").to_detail()["field_errors"] == {}
