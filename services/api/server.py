from __future__ import annotations
from typing import Any
from flask import Flask, request, jsonify, Response

from services.api.service import CapitalService
from services.capital.errors import FutureDateError, SourceNotFoundError, StorageUnavailableError
from services.config.env import configure_logging, get_api_config
from services.exports.writers import write_capital_history, write_wacc_trend
from services.historical.periods import DateRange

import json
from pathlib import Path
import logging

logger = logging.getLogger(__name__)

app = Flask(__name__)

OPENAPI_PATH = Path(__file__).with_name('openapi.json')

# Configuration helpers (overridable via app.config in tests)

def _get_api_key() -> str | None:
    if 'API_KEY' in app.config:
        return app.config.get('API_KEY')
    return get_api_config().api_key


def _get_service() -> CapitalService:
    svc = app.config.get('CAPITAL_SERVICE')
    if svc is None:
        svc = CapitalService.from_config()
        app.config['CAPITAL_SERVICE'] = svc
    return svc


def _check_api_key():
    api_key = _get_api_key()
    if api_key:
        provided = request.headers.get('X-API-Key')
        if provided != api_key:
            return jsonify({'error': 'unauthorized'}), 401
    return None


@app.before_request
def _auth():
    # Only enforce for API routes under /capital; skip static or root
    if request.path.startswith('/capital'):
        return _check_api_key()
    return None


@app.errorhandler(FutureDateError)
def _future_date(e: FutureDateError):
    return jsonify({'error': 'future_date', 'message': str(e)}), 400


@app.errorhandler(SourceNotFoundError)
def _not_found(e: SourceNotFoundError):
    return jsonify({'error': 'source_not_found', 'message': str(e)}), 404


@app.errorhandler(StorageUnavailableError)
def _storage(e: StorageUnavailableError):
    logger.error("Storage unavailable: %s", e)
    return jsonify({'error': 'storage_unavailable'}), 503


@app.errorhandler(ValueError)
def _bad_request(e: ValueError):
    return jsonify({'error': 'invalid_request', 'message': str(e)}), 400


def _body() -> dict[str, Any]:
    payload = request.get_json(force=True, silent=True)
    return payload if isinstance(payload, dict) else {}


def _require(payload: dict[str, Any], *keys: str) -> None:
    missing = [k for k in keys if payload.get(k) is None]
    if missing:
        raise ValueError(f"{', '.join(missing)} is required")


def _custom_range() -> DateRange | None:
    start, end = request.args.get('start'), request.args.get('end')
    if start and end:
        return DateRange(start, end)
    if start or end:
        raise ValueError("start and end must be given together")
    return None


# Writes

@app.post('/capital/sources')
def post_source():
    payload = _body()
    _require(payload, 'name', 'annual_rate', 'available_cents', 'effective_date')
    sid = _get_service().add_capital_source(payload, payload['effective_date'], payload.get('notes'))
    return jsonify({'source_id': sid}), 201


@app.post('/capital/sources/<sid>/amount')
def post_amount(sid: str):
    payload = _body()
    _require(payload, 'available_cents', 'effective_date')
    _get_service().update_capital_amount(sid, payload['available_cents'], payload['effective_date'], payload.get('notes'))
    return jsonify({'source_id': sid, 'status': 'recorded'})


@app.post('/capital/sources/<sid>/rate')
def post_rate(sid: str):
    payload = _body()
    _require(payload, 'annual_rate', 'effective_date')
    _get_service().update_capital_rate(sid, payload['annual_rate'], payload['effective_date'], payload.get('notes'))
    return jsonify({'source_id': sid, 'status': 'recorded'})


@app.post('/capital/sources/<sid>/remove')
def post_remove(sid: str):
    payload = _body()
    _require(payload, 'effective_date')
    _get_service().remove_capital_source(sid, payload['effective_date'], payload.get('notes'))
    return jsonify({'source_id': sid, 'status': 'recorded'})


# Reads

@app.get('/capital/sources')
def get_sources():
    sources = _get_service().get_active_capital_sources(request.args.get('as_of'))
    return jsonify({'sources': [s.to_dict() for s in sources]})


def _history_entries():
    svc = _get_service()
    sid = request.args.get('source_id')
    start, end = request.args.get('start'), request.args.get('end')
    if sid:
        entries = svc.get_history_for_source(sid)
    elif start and end:
        entries = svc.get_history_in_date_range(start, end)
    elif start or end:
        raise ValueError("start and end must be given together")
    else:
        entries = svc.get_capital_history()
    return entries


@app.get('/capital/history')
def get_history():
    return jsonify({'entries': [e.to_dict() for e in _history_entries()]})


@app.get('/capital/history.csv')
def get_history_csv():
    return Response(write_capital_history(_history_entries()), mimetype='text/csv')


@app.get('/capital/wacc')
def get_wacc():
    svc = _get_service()
    when = request.args.get('date') or svc.store.now()
    return jsonify(svc.calculate_wacc_at_date(when).to_dict())


@app.get('/capital/wacc/period')
def get_period_wacc():
    svc = _get_service()
    period_type = request.args.get('period_type', 'monthly')
    ref = request.args.get('reference_date') or svc.store.now()
    return jsonify(svc.calculate_period_wacc(period_type, ref, _custom_range()))


@app.get('/capital/wacc/period.md')
def get_period_wacc_md():
    svc = _get_service()
    period_type = request.args.get('period_type', 'monthly')
    md = svc.get_period_summary_md(period_type, request.args.get('reference_date'), _custom_range())
    return Response(md, mimetype='text/markdown')


def _trend_points():
    svc = _get_service()
    period_type = request.args.get('period_type', 'monthly')
    return svc.get_wacc_trend_for(period_type, request.args.get('reference_date'), _custom_range())


@app.get('/capital/wacc/trend')
def get_trend():
    return jsonify({'points': _trend_points()})


@app.get('/capital/wacc/trend.csv')
def get_trend_csv():
    return Response(write_wacc_trend(_trend_points()), mimetype='text/csv')


# OpenAPI document route (serves static JSON file)
@app.get('/openapi.json')
def get_openapi():
    try:
        with open(OPENAPI_PATH, 'r') as f:
            doc = json.load(f)
        return jsonify(doc)
    except OSError:
        return jsonify({'error': 'openapi_not_found'}), 404


if __name__ == '__main__':
    configure_logging()
    app.run(host='0.0.0.0', port=8000)
