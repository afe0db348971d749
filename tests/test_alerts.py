"""Tests for ecosystem_agent/alerts.py."""

import json
import logging

import httpx

from ecosystem_agent.alerts import LogAlertSink, SlackAlertSink


async def test_log_sink_logs_warning(caplog):
    with caplog.at_level(logging.WARNING):
        await LogAlertSink().notify("cost alert")
    assert "cost alert" in caplog.text


async def test_slack_sink_posts_text():
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, text="ok")

    sink = SlackAlertSink("https://hooks.slack.test/T1", transport=httpx.MockTransport(handler))
    await sink.notify("cost alert: $51.00")

    assert captured == {"url": "https://hooks.slack.test/T1", "body": {"text": "cost alert: $51.00"}}


async def test_slack_sink_failure_is_logged_not_raised(caplog):
    sink = SlackAlertSink("https://hooks.slack.test/T1", transport=httpx.MockTransport(lambda r: httpx.Response(500)))
    with caplog.at_level(logging.ERROR):
        await sink.notify("cost alert")
    assert "Failed to send Slack alert" in caplog.text
