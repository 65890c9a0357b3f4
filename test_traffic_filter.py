#!/usr/bin/env python3
"""
Tests for request/response classification
"""

import pytest

from embed_extractor import (
    BLOCK,
    CAPTURE_SUBTITLE,
    CAPTURE_TARGET,
    IGNORE,
    PASSTHROUGH,
    TrafficFilter,
)


@pytest.mark.parametrize("resource_type", [
    "image", "stylesheet", "font", "media", "texttrack",
    "eventsource", "websocket", "manifest", "other",
])
def test_denylisted_resource_types_are_blocked(resource_type):
    traffic = TrafficFilter()
    assert traffic.classify_request("https://cdn.x.test/asset", resource_type) == BLOCK


def test_block_takes_priority_over_capture():
    traffic = TrafficFilter(source_target=".m3u8")
    assert traffic.classify_request("https://cdn.x.test/master.m3u8", "media") == BLOCK
    assert traffic.classify_request("https://www.google-analytics.com/g.m3u8", "fetch") == BLOCK


def test_analytics_domains_are_blocked():
    traffic = TrafficFilter()
    assert traffic.classify_request("https://ganalyticshub.net/track", "script") == BLOCK


def test_source_target_is_captured():
    traffic = TrafficFilter(source_target=".m3u8")
    assert traffic.classify_request("https://cdn.x.test/stream/master.m3u8?sig=abc", "xhr") == CAPTURE_TARGET


def test_custom_source_target():
    traffic = TrafficFilter(source_target="/playlist/")
    assert traffic.classify_request("https://cdn.x.test/playlist/77", "fetch") == CAPTURE_TARGET
    assert traffic.classify_request("https://cdn.x.test/stream/master.m3u8", "fetch") == PASSTHROUGH


def test_everything_else_passes_through():
    traffic = TrafficFilter()
    assert traffic.classify_request("https://x.test/embed/1", "document") == PASSTHROUGH
    assert traffic.classify_request("https://x.test/js/player.min.js", "script") == PASSTHROUGH


def test_subtitle_responses():
    traffic = TrafficFilter(subtitle_target="getSources")
    assert traffic.subtitles_expected
    assert traffic.classify_response("https://x.test/ajax/getSources?id=9") == CAPTURE_SUBTITLE
    assert traffic.classify_response("https://x.test/ajax/other") == IGNORE


def test_no_subtitle_sentinel():
    traffic = TrafficFilter(subtitle_target="0")
    assert not traffic.subtitles_expected
    assert traffic.classify_response("https://x.test/0/getSources") == IGNORE
