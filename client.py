"""Thin httpx client for the Form Builder API.

Construct one per base URL and pass it to whatever needs it::

    client = FormBuilderClient("http://localhost:5000/api")
    form = client.get_form(form_id)
    client.submit_form(form_id, {"name": "Ada"}, form=form)

When ``submit_form`` is given the form definition it runs the same
``validate_submission`` the server runs, and raises ``SubmissionInvalid``
without sending anything if the data would be rejected.
"""

import logging
from typing import Any, Dict, Optional, Union

import httpx

from schemas import Form
from validation import ValidationResult, validate_submission

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:5000/api"


class ApiError(Exception):
    """Non-2xx answer from the API."""

    def __init__(self, status_code: int, message: str, errors: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.errors = errors or {}


class SubmissionInvalid(Exception):
    """Submission data failed validation before it was sent."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__("Submission data is invalid")
        self.result = result

    @property
    def errors(self) -> Dict[str, str]:
        return self.result.errors


def _error_from_response(response: httpx.Response) -> ApiError:
    try:
        body = response.json()
    except ValueError:
        body = None
    detail = body.get("detail") if isinstance(body, dict) else None

    if isinstance(detail, dict):
        return ApiError(response.status_code, detail.get("message", "An error occurred"), detail.get("errors"))
    if isinstance(detail, str):
        return ApiError(response.status_code, detail)
    # FastAPI request validation errors come back as a list
    return ApiError(response.status_code, f"HTTP error! status: {response.status_code}")


class FormBuilderClient:
    """Client for one API deployment.

    Pass either ``base_url`` or a preconfigured ``http_client``. When
    ``http_client`` is given, ``base_url`` is not used: requests go to the
    client's own base URL, and closing this object closes that client.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, http_client: Optional[httpx.Client] = None) -> None:
        self._http = http_client or httpx.Client(base_url=base_url)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "FormBuilderClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self._http.request(method, endpoint, **kwargs)
        except httpx.HTTPError:
            logger.exception("API request failed: %s %s", method, endpoint)
            raise
        if response.is_error:
            raise _error_from_response(response)
        return response

    def _json(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        return self._request(method, endpoint, **kwargs).json()

    # Forms

    def get_forms(self, **params: Any) -> Dict[str, Any]:
        return self._json("GET", "/forms", params=params)

    def get_form(self, form_id: str) -> Dict[str, Any]:
        return self._json("GET", f"/forms/{form_id}")

    def create_form(self, form_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._json("POST", "/forms", json=form_data)

    def update_form(self, form_id: str, form_data: Dict[str, Any]) -> Dict[str, Any]:
        return self._json("PUT", f"/forms/{form_id}", json=form_data)

    def delete_form(self, form_id: str) -> Dict[str, Any]:
        return self._json("DELETE", f"/forms/{form_id}")

    def duplicate_form(self, form_id: str) -> Dict[str, Any]:
        return self._json("POST", f"/forms/{form_id}/duplicate")

    def get_form_analytics(self, form_id: str) -> Dict[str, Any]:
        return self._json("GET", f"/forms/{form_id}/analytics")

    # Submissions

    def get_submissions(self, form_id: str, **params: Any) -> Dict[str, Any]:
        return self._json("GET", f"/submissions/form/{form_id}", params=params)

    def submit_form(
        self,
        form_id: str,
        data: Dict[str, Any],
        form: Optional[Union[Form, Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        if form is not None:
            if not isinstance(form, Form):
                form = Form.model_validate(form)
            result = validate_submission(form, data)
            if not result.is_valid:
                raise SubmissionInvalid(result)
        return self._json("POST", f"/submissions/{form_id}", json={"data": data})

    def get_submission(self, submission_id: str) -> Dict[str, Any]:
        return self._json("GET", f"/submissions/{submission_id}")

    def delete_submission(self, submission_id: str) -> Dict[str, Any]:
        return self._json("DELETE", f"/submissions/{submission_id}")

    def export_submissions(self, form_id: str) -> str:
        return self._request("GET", f"/submissions/form/{form_id}/export").text
