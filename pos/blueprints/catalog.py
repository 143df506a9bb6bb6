"""Catalog lookups used by the till and the product editor helper."""
from dataclasses import asdict
from decimal import Decimal

from flask import Blueprint, jsonify

from pos.database import get_session
from pos.exceptions import NotFoundError
from pos.repositories import SqlCatalogStore
from pos.services.product_pricing_service import recalculate
from pos.utils.payload import request_payload

catalog_bp = Blueprint('catalog', __name__, url_prefix='/catalog')


def _snapshot_dict(snapshot) -> dict:
    return {
        key: (str(value) if isinstance(value, Decimal) else value)
        for key, value in asdict(snapshot).items()
    }


@catalog_bp.route('/products/<int:product_id>', methods=['GET'])
def product_detail(product_id: int):
    snapshot = SqlCatalogStore(get_session()).get_product(product_id)
    return jsonify({'status': 'ok', 'product': _snapshot_dict(snapshot)})


@catalog_bp.route('/barcode/<string:barcode>', methods=['GET'])
def product_by_barcode(barcode: str):
    snapshot = SqlCatalogStore(get_session()).find_by_barcode(barcode)
    if snapshot is None:
        raise NotFoundError(f'No product with barcode "{barcode}".')
    return jsonify({'status': 'ok', 'product': _snapshot_dict(snapshot)})


@catalog_bp.route('/pricing/recalculate', methods=['POST'])
def pricing_recalculate():
    """MRP / discount% / price editor coupling."""
    payload = request_payload()
    values = recalculate(payload.get('field'), payload)
    return jsonify({
        'status': 'ok',
        'values': {key: (str(value) if value is not None else None) for key, value in values.items()},
    })
