#!/usr/bin/env python3
"""
Rover - Web Interface
HTTP front end for extracting stream manifests from embed pages
"""

from flask import Flask, request, jsonify

from admission import Busy, Forbidden
from embed_extractor import (
    DEFAULT_SOURCE_TARGET,
    DEFAULT_SUBTITLE_TARGET,
    ExtractionRequest,
)

MODULE_VERSION = "1.0.0"

app = Flask(__name__)

# RoverService, attached by start_web.py before serving
rover = None


def attach_service(service):
    global rover
    rover = service


@app.route('/')
def index():
    """Version banner"""
    return jsonify(f"ROVER-MODULE [ {MODULE_VERSION} ]")


@app.route('/extract')
def extract():
    """Extract the source URL (and subtitles) from an embed page"""
    url = request.args.get('url', '').strip()
    if not url:
        return jsonify('MISSING-URL'), 400

    extraction = ExtractionRequest(
        embed_url=url,
        source_target=request.args.get('sourceTarget') or DEFAULT_SOURCE_TARGET,
        subtitle_target=request.args.get('subTarget') or DEFAULT_SUBTITLE_TARGET,
        referer=request.args.get('referer') or None,
        timeout_ms=rover.settings.extract_timeout_ms,
    )

    try:
        result = rover.extract(extraction)
    except Busy:
        return jsonify('BUSY'), 503

    if not result.ok:
        return jsonify(result.error), 400

    return jsonify(result.to_json())


@app.route('/reset')
def reset():
    """Force the active counter back to zero (requires the reset key)"""
    try:
        rover.reset(request.args.get('key'))
    except Forbidden:
        return '', 403
    return jsonify('SUCCESS')


@app.route('/status')
def status():
    """Number of extractions currently admitted"""
    return jsonify(rover.status())
