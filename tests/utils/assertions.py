"""Test utilities for asserting API responses and message codes."""

from typing import Any
from httpx import Response
from src.api.core.messages import MessageCode
from src.api.core.exceptions.base import MarketplaceException


def assert_success_response(
    response: Response,
    expected_message_code: MessageCode = MessageCode.SUCCESS,
    expected_status: int = 200,
    data_assertions: dict[str, Any] | None = None,
) -> Any:
    """Assert that response is successful with expected message code.

    Args:
        response: HTTP response to check
        expected_message_code: Expected message code
        expected_status: Expected HTTP status code
        data_assertions: Optional dict of assertions to run on response data

    Returns:
        Response data for further assertions
    """
    assert response.status_code == expected_status, (
        f"Expected status {expected_status}, got {response.status_code}. "
        f"Response: {response.text}"
    )

    json_data = response.json()

    assert json_data.get("message_code") == expected_message_code.value, (
        f"Expected message_code {expected_message_code.value}, "
        f"got {json_data.get('message_code')}"
    )
    assert "message" in json_data, "Success response should have message"

    if data_assertions:
        data = json_data.get("data")
        for field, expected_value in data_assertions.items():
            current = data
            for part in field.split("."):
                current = current[part]
            assert (
                current == expected_value
            ), f"Expected {field} to be {expected_value}, got {current}"

    return json_data.get("data")


def assert_error_response(
    response: Response,
    expected_message_code: MessageCode,
    expected_status: int,
) -> dict[str, Any]:
    """Assert that response is an error with expected message code.

    Returns:
        The full error body for further assertions
    """
    assert response.status_code == expected_status, (
        f"Expected status {expected_status}, got {response.status_code}. "
        f"Response: {response.text}"
    )

    json_data = response.json()
    assert json_data.get("message_code") == expected_message_code.value, (
        f"Expected message_code {expected_message_code.value}, "
        f"got {json_data.get('message_code')}"
    )
    return json_data


def assert_validation_error(response: Response) -> dict[str, Any]:
    json_data = assert_error_response(response, MessageCode.INVALID_INPUT, 422)
    assert json_data["details"]["validation_errors"]
    return json_data


def assert_marketplace_exception(
    exception: MarketplaceException,
    expected_message_code: MessageCode,
    expected_status: int | None = None,
) -> None:
    """Assert that a MarketplaceException has expected properties."""
    assert exception.message_code == expected_message_code, (
        f"Expected message_code {expected_message_code}, "
        f"got {exception.message_code}"
    )

    if expected_status:
        assert exception.status_code == expected_status, (
            f"Expected status_code {expected_status}, got {exception.status_code}"
        )


def assert_paginated_response(
    response: Response,
    expected_total: int | None = None,
    expected_limit: int | None = None,
) -> list[Any]:
    """Assert paginated response structure and return items."""
    data = assert_success_response(response)

    assert "items" in data, "Paginated response should have 'items'"
    assert "pagination" in data, "Paginated response should have 'pagination'"

    pagination = data["pagination"]
    if expected_total is not None:
        assert (
            pagination["total"] == expected_total
        ), f"Expected total {expected_total}, got {pagination['total']}"
    if expected_limit is not None:
        assert pagination["limit"] == expected_limit

    return data["items"]
