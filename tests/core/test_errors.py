# tests/core/test_errors.py
"""
Тесты доменных ошибок.
"""

from __future__ import annotations

import pytest

from src.core.errors import (
    HTTP_STATUS_BY_KIND,
    ErrorKind,
    LocationError,
    not_found,
    validation_error,
)


class TestLocationError:
    """Тесты для LocationError."""

    @pytest.mark.parametrize(
        "kind, status",
        [
            (ErrorKind.NOT_FOUND, 404),
            (ErrorKind.ROLE_INVALID, 403),
            (ErrorKind.VALIDATION_ERROR, 400),
            (ErrorKind.LOCATION_NOT_INITIALIZED, 404),
            (ErrorKind.TRACKING_DISABLED, 400),
            (ErrorKind.SUBSCRIPTION_NOT_FOUND, 404),
            (ErrorKind.LOCATION_HISTORY_EMPTY, 404),
        ],
    )
    def test_http_status(self, kind: ErrorKind, status: int) -> None:
        assert LocationError(kind, "msg").http_status == status

    def test_every_kind_has_status(self) -> None:
        assert set(HTTP_STATUS_BY_KIND) == set(ErrorKind)

    def test_details(self) -> None:
        error = LocationError(ErrorKind.ROLE_INVALID, "User is not a professional", entity="professional", field="role")

        assert error.details() == {"entity": "professional", "field": "role"}
        assert str(error) == "User is not a professional"

    def test_details_empty(self) -> None:
        assert LocationError(ErrorKind.NOT_FOUND, "x").details() is None

    def test_is_exception(self) -> None:
        with pytest.raises(LocationError) as exc_info:
            raise validation_error("bad", field="latitude")
        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR


class TestHelpers:
    """Тесты фабрик ошибок."""

    def test_validation_error(self) -> None:
        error = validation_error("Invalid latitude", field="latitude")

        assert error.kind is ErrorKind.VALIDATION_ERROR
        assert error.field == "latitude"

    def test_not_found_default_message(self) -> None:
        error = not_found("professional")

        assert error.kind is ErrorKind.NOT_FOUND
        assert error.message == "Professional not found"
        assert error.entity == "professional"

    def test_not_found_custom_message(self) -> None:
        assert not_found("location", "Location not found for this professional").message == (
            "Location not found for this professional"
        )
