from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from flask import Blueprint, current_app, jsonify, request

from billsplit.api.validators import (
    ApiValidationError,
    parse_items,
    parse_number,
    parse_mode,
    parse_options,
    parse_parties,
    parse_rates,
    parse_weights,
)
from billsplit.config import COUNTRY_PRESETS, CountryPreset
from billsplit.domain.fees import forward, reverse
from billsplit.domain.models import FeeRates, SplitBreakdown, SplitOptions
from billsplit.domain.money import format_share_summary
from billsplit.domain.rounding import RoundingMode, to_minor_units
from billsplit.domain.split_logic import split_by_items, split_by_weight
from billsplit.events import EventEmitter
from billsplit.services.receipt_parser import ReceiptParseError, extract_items_from_ocr_text

api_bp = Blueprint("api", __name__, url_prefix="/api")

log = structlog.get_logger(__name__)


def _json_error(message: str, *, status: int = 400, code: str = "bad_request"):
    return jsonify({"error": {"code": code, "message": message}}), status


def _events() -> EventEmitter:
    emitter = current_app.extensions.get("billsplit.events")
    if emitter is None:
        emitter = EventEmitter()
        current_app.extensions["billsplit.events"] = emitter
    return emitter


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ApiValidationError("Request body must be a JSON object.")
    return data


def _default_currency() -> str:
    country = current_app.config.get("DEFAULT_COUNTRY", "Singapore")
    preset = COUNTRY_PRESETS.get(country, COUNTRY_PRESETS["Singapore"])
    return preset.currency


def _default_mode() -> str:
    return current_app.config.get("DEFAULT_ROUNDING_MODE", RoundingMode.HALF_UP.value)


def _preset(data: Dict[str, Any]) -> Optional[CountryPreset]:
    """A request naming a country gets that country's currency and fee rates as defaults."""
    country = data.get("country")
    if country is None:
        return None
    if not isinstance(country, str) or country not in COUNTRY_PRESETS:
        raise ApiValidationError(f"Unknown country: {country}")
    return COUNTRY_PRESETS[country]


def _rates(data: Dict[str, Any]) -> FeeRates:
    preset = _preset(data)
    return parse_rates(data, defaults=preset.rates() if preset else FeeRates())


def _options(data: Dict[str, Any]) -> SplitOptions:
    preset = _preset(data)
    currency = preset.currency if preset else _default_currency()
    return parse_options(data, default_mode=_default_mode(), default_currency=currency)


def _mode(data: Dict[str, Any]) -> RoundingMode:
    return parse_mode(data, default_mode=_default_mode())


def _breakdown_response(breakdown: SplitBreakdown, names: Dict[str, str]):
    # Safety: ensure penny-perfect sum
    per_party_cents = sum(to_minor_units(share.total) for share in breakdown.per_party)
    if per_party_cents != to_minor_units(breakdown.grand_total):
        log.error("split.mismatch", grand_total=breakdown.grand_total, per_party_cents=per_party_cents)
        return _json_error(
            "Internal error: totals do not sum to grand total.", status=500, code="internal_mismatch"
        )

    body = breakdown.to_dict()
    body["summary"] = format_share_summary(breakdown, names)
    return jsonify(body), 200


@api_bp.errorhandler(ApiValidationError)
def _handle_validation_error(error: ApiValidationError):
    log.info("request.invalid", path=request.path, reason=str(error))
    return _json_error(str(error), status=400)


@api_bp.get("/health")
def health():
    return jsonify({"status": "ok"}), 200


@api_bp.get("/presets")
def presets():
    return jsonify(
        {
            "default_country": current_app.config.get("DEFAULT_COUNTRY", "Singapore"),
            "presets": [preset.to_dict() for preset in COUNTRY_PRESETS.values()],
        }
    ), 200


@api_bp.post("/fees/forward")
def fees_forward():
    """
    JSON: {amount, service_charge_rate?, tax_rate?, country?, rounding_mode?}
    Response: {before, service_charge, tax, total}
    """
    data = _json_body()
    amount = parse_number(data, "amount")
    rates = _rates(data)
    mode = _mode(data)

    result = forward(amount, rates.service_charge_rate, rates.tax_rate, mode)
    _events().emit("fee_forward", {"mode": mode.value})
    return jsonify(result.to_dict()), 200


@api_bp.post("/fees/reverse")
def fees_reverse():
    """
    JSON: {total, service_charge_rate?, tax_rate?, country?, rounding_mode?}
    Response: {before, service_charge, tax, total}
    """
    data = _json_body()
    total = parse_number(data, "total")
    rates = _rates(data)
    mode = _mode(data)

    result = reverse(total, rates.service_charge_rate, rates.tax_rate, mode)
    _events().emit("fee_reverse", {"mode": mode.value})
    return jsonify(result.to_dict()), 200


@api_bp.post("/split/items")
def split_items_endpoint():
    """
    JSON:
      parties: [{id, name?, weight?}]
      items: [{id, name?, quantity?, unit_price, assignments?: [{party_id, share_percent?}]}]
      country?, service_charge_rate?, tax_rate?, rounding_mode?, round_to_step?, currency?
    Items without assignments are split across all parties by weight.
    """
    data = _json_body()
    parties = parse_parties(data.get("parties"), max_parties=current_app.config.get("MAX_PARTIES", 50))
    items = parse_items(data.get("items"), max_items=current_app.config.get("MAX_ITEMS", 200))
    rates = _rates(data)
    options = _options(data)

    breakdown = split_by_items(items, parties, rates.service_charge_rate, rates.tax_rate, options)

    log.info(
        "split.items.ok",
        parties=len(parties),
        items=len(items),
        grand_total=breakdown.grand_total,
        mode=options.mode.value,
    )
    _events().emit("split_items", {"parties": len(parties), "items": len(items)})
    return _breakdown_response(breakdown, {p.id: p.name for p in parties})


@api_bp.post("/split/total")
def split_total_endpoint():
    """
    JSON:
      total, fees_included? (default true)
      parties: [{id, name?, weight?}], weights?: {party_id: weight}
      country?, service_charge_rate?, tax_rate?, rounding_mode?, round_to_step?, currency?
    """
    data = _json_body()
    total = parse_number(data, "total")
    if total < 0:
        raise ApiValidationError("'total' must be >= 0.")
    parties = parse_parties(data.get("parties"), max_parties=current_app.config.get("MAX_PARTIES", 50))
    weights = parse_weights(data.get("weights"))
    rates = _rates(data)
    fees_included = data.get("fees_included", True)
    if not isinstance(fees_included, bool):
        raise ApiValidationError("'fees_included' must be a boolean.")
    options = _options(data)

    breakdown = split_by_weight(
        total,
        parties,
        weights,
        rates.service_charge_rate,
        rates.tax_rate,
        options,
        fees_included=fees_included,
    )

    log.info(
        "split.total.ok",
        parties=len(parties),
        grand_total=breakdown.grand_total,
        fees_included=fees_included,
        mode=options.mode.value,
    )
    _events().emit("split_total", {"parties": len(parties), "fees_included": fees_included})
    return _breakdown_response(breakdown, {p.id: p.name for p in parties})


@api_bp.post("/receipts/parse")
def parse_receipt_endpoint():
    """
    JSON: {text} - raw OCR text, one receipt line per line.
    Response: {items: [{id, name, quantity, unit_price, assignments}]}
    Items come back unassigned, ready to post to /split/items.
    """
    data = _json_body()
    text = data.get("text")
    if not isinstance(text, str) or not text.strip():
        raise ApiValidationError("'text' must be a non-empty string.")

    try:
        parsed = extract_items_from_ocr_text(text)
    except ReceiptParseError:
        log.warning("receipt.parse_failed")
        return _json_error("Failed to parse receipt text.", status=422, code="parse_failed")

    items = [it.to_line_item(f"i{idx}") for idx, it in enumerate(parsed)]
    _events().emit("receipt_parse", {"items": len(items)})
    return jsonify({"items": [item.to_dict() for item in items]}), 200
