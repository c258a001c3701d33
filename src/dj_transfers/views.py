from __future__ import annotations

import json

from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from .exceptions import ConcurrentModification, TransferFailed, TransferValidationError
from .fees import TRANSFER_TYPES, processing_time
from .requests import TransferRequest
from .utils import get_transfer_engine


def _api_error(code: str, message: str, *, status: int = 400) -> JsonResponse:
    return JsonResponse({"ok": False, "error": {"code": code, "message": message}}, status=status)


def _request_json_payload(request) -> dict:
    raw = request.body or b""
    if not raw:
        return {}
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Request body must be valid JSON.") from None
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")
    return payload


def _transfer_request(request) -> TransferRequest:
    payload = _request_json_payload(request)
    transfer_request = TransferRequest.from_dict(payload)
    idempotency_key = request.headers.get("Idempotency-Key", "").strip()
    if idempotency_key and not transfer_request.idempotency_key:
        transfer_request.idempotency_key = idempotency_key[:128]
    return transfer_request


@require_http_methods(["GET"])
def fee_quote(_request, transfer_type):
    if transfer_type not in TRANSFER_TYPES:
        return _api_error("unknown_transfer_type", f"Unknown transfer type: {transfer_type}", status=404)
    engine = get_transfer_engine()()
    return JsonResponse(
        {
            "ok": True,
            "data": {
                "transfer_type": transfer_type,
                "fee": str(engine.compute_fee(transfer_type)),
                "processing_time": processing_time(transfer_type),
            },
        }
    )


@csrf_exempt
@require_http_methods(["POST"])
def review_transfer(request):
    try:
        transfer_request = _transfer_request(request)
    except ValidationError as exc:
        return _api_error("invalid_payload", exc.messages[0], status=400)

    engine = get_transfer_engine()()
    result = engine.validate_transfer_request(transfer_request)
    if not result:
        return _api_error(result.reason, result.message, status=400)

    fee = engine.compute_fee(transfer_request.transfer_type)
    return JsonResponse(
        {
            "ok": True,
            "data": {
                "transfer_type": transfer_request.transfer_type,
                "amount": str(result.amount),
                "fee": str(fee),
                "total": str(result.amount + fee),
                "processing_time": processing_time(transfer_request.transfer_type),
            },
        }
    )


@csrf_exempt
@require_http_methods(["POST"])
def create_transfer(request):
    try:
        transfer_request = _transfer_request(request)
    except ValidationError as exc:
        return _api_error("invalid_payload", exc.messages[0], status=400)

    try:
        receipt = get_transfer_engine()().execute_transfer(transfer_request)
    except TransferValidationError as exc:
        return _api_error(exc.reason, exc.message, status=400)
    except TransferFailed as exc:
        if isinstance(exc.__cause__, ConcurrentModification):
            return _api_error(
                "concurrent_modification",
                "Another transaction is in progress for this account",
                status=409,
            )
        return _api_error(exc.reason, exc.message, status=500)

    status = 200 if receipt.idempotent_replay else 201
    return JsonResponse({"ok": True, "data": receipt.to_dict()}, status=status)
