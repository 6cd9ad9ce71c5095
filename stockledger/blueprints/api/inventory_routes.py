"""JSON adapter over the stock ledger.

Synopsis:
Thin HTTP surface for receiving, issuing, adjusting and reading stock. Every
route builds a ledger bound to the request session, passes caller values through
unchanged for validation by the service layer, and lets ``LedgerError`` reach
the global handler in ``stockledger.resilience``.

Glossary:
- Actor: Opaque caller identity taken from the ``X-Actor`` header.
- Sale: A batch issue where every line succeeds or none do.
"""

import logging
from datetime import datetime

from flask import Blueprint, request

from ...extensions import limiter
from ...services.inventory_ledger import InvalidArgumentError, MovementFilter, get_ledger
from ...utils.api_responses import APIResponse
from ...utils.timezone_utils import TimezoneUtils

logger = logging.getLogger(__name__)

inventory_api_bp = Blueprint('inventory_api', __name__)

WRITE_LIMIT = "120 per minute"


def _actor():
    return (request.headers.get('X-Actor') or '').strip() or None


def _parse_datetime(value, field):
    if value in (None, ''):
        return None
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field} must be an ISO 8601 timestamp", **{field: value})
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidArgumentError(f"{field} must be an ISO 8601 timestamp", **{field: value})
    return TimezoneUtils.ensure_timezone_aware(parsed)


def _int_arg(name):
    raw = request.args.get(name)
    if raw in (None, ''):
        return None
    try:
        return int(raw)
    except ValueError:
        raise InvalidArgumentError(f"{name} must be an integer", **{name: raw})


def _quantity(payload):
    return payload.get('qty', payload.get('quantity'))


@inventory_api_bp.route('/_ping', methods=['GET'])
@limiter.exempt
def ping():
    return APIResponse.success({'status': 'ok', 'server_time': TimezoneUtils.utc_now().isoformat()})


@inventory_api_bp.route('/receive', methods=['POST'])
@limiter.limit(WRITE_LIMIT)
def receive():
    payload = APIResponse.json_body()
    ledger = get_ledger()
    receipt = ledger.receive(
        payload.get('variant_id'),
        _quantity(payload),
        payload.get('unit_cost'),
        arrival_time=_parse_datetime(payload.get('received_at'), 'received_at'),
        note=payload.get('note'),
        actor=_actor(),
    )
    data = receipt.to_dict()
    data['stock'] = ledger.current_stock(receipt.lot.variant_id)
    return APIResponse.created(data)


@inventory_api_bp.route('/issue', methods=['POST'])
@limiter.limit(WRITE_LIMIT)
def issue():
    payload = APIResponse.json_body()
    ledger = get_ledger()
    allocation = ledger.issue(
        payload.get('variant_id'),
        _quantity(payload),
        note=payload.get('note'),
        external_ref=payload.get('ref'),
        actor=_actor(),
    )
    data = allocation.to_dict()
    data['stock'] = ledger.current_stock(allocation.variant_id)
    return APIResponse.success(data)


@inventory_api_bp.route('/sale', methods=['POST'])
@limiter.limit(WRITE_LIMIT)
def sale():
    """Issue every line of an order atomically."""
    payload = APIResponse.json_body()
    items = payload.get('items')
    if not isinstance(items, list) or not items:
        raise InvalidArgumentError("items must be a non-empty list")

    order_id = payload.get('order_id')
    order_ref = str(order_id) if order_id not in (None, '') else None
    lines = []
    for item in items:
        if not isinstance(item, dict):
            raise InvalidArgumentError("each item must be an object")
        lines.append({
            'variant_id': item.get('variant_id'),
            'quantity': _quantity(item),
            'note': item.get('note', payload.get('note')),
            'ref': item.get('ref', order_ref),
        })

    allocations = get_ledger().issue_many(lines, actor=_actor())
    logger.info("SALE: order %s issued %s line(s)", order_id, len(allocations))
    return APIResponse.success({
        'order_id': order_id,
        'lines': [allocation.to_dict() for allocation in allocations],
    })


@inventory_api_bp.route('/adjust', methods=['POST'])
@limiter.limit(WRITE_LIMIT)
def adjust():
    payload = APIResponse.json_body()
    ledger = get_ledger()
    movement = ledger.adjust(
        payload.get('variant_id'),
        payload.get('delta'),
        note=payload.get('note'),
        actor=_actor(),
    )
    data = movement.to_dict()
    data['stock'] = ledger.current_stock(movement.variant_id)
    return APIResponse.success(data)


@inventory_api_bp.route('/variants/<int:variant_id>/stock', methods=['PUT'])
@limiter.limit(WRITE_LIMIT)
def set_stock(variant_id):
    payload = APIResponse.json_body()
    ledger = get_ledger()
    movement = ledger.set_stock(
        variant_id,
        payload.get('stock'),
        note=payload.get('note'),
        actor=_actor(),
    )
    return APIResponse.success({
        'movement': movement.to_dict() if movement is not None else None,
        'stock': ledger.snapshot(variant_id).to_dict(),
    })


@inventory_api_bp.route('/variants/<int:variant_id>/stock', methods=['GET'])
def variant_stock(variant_id):
    return APIResponse.success(get_ledger().snapshot(variant_id).to_dict())


@inventory_api_bp.route('/variants/<int:variant_id>/lots', methods=['GET'])
def variant_lots(variant_id):
    include_depleted = request.args.get('include_depleted', '').lower() in ('1', 'true', 'yes')
    lots = get_ledger().lots(variant_id, include_depleted=include_depleted)
    return APIResponse.success([lot.to_dict() for lot in lots])


@inventory_api_bp.route('/products/<int:product_id>/stock', methods=['GET'])
def product_stock(product_id):
    return APIResponse.success({
        'product_id': product_id,
        'stock': get_ledger().product_stock(product_id),
    })


@inventory_api_bp.route('/moves', methods=['GET'])
def moves():
    movement_filter = MovementFilter(
        variant_id=_int_arg('variant_id'),
        kind=request.args.get('type') or None,
        from_time=_parse_datetime(request.args.get('from'), 'from'),
        to_time=_parse_datetime(request.args.get('to'), 'to'),
        text_search=request.args.get('q') or None,
        limit=_int_arg('limit'),
        offset=_int_arg('offset') or 0,
    )
    movements = get_ledger().list_movements(movement_filter)
    return APIResponse.success([movement.to_dict() for movement in movements])
