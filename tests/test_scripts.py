from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

from sqlalchemy import create_engine, inspect

from gradspeech.db.init_db import create_all
from gradspeech.integrations.stripe.events import EventKind, parse_event
from gradspeech.integrations.stripe.signature import verify
from gradspeech.scripts.send_test_webhook import SAMPLE_FORM_DATA, build_checkout_event, send


class TestInitDb:
    def test_creates_completion_records_table(self):
        engine = create_engine("sqlite://")
        create_all(engine)
        assert "completion_records" in inspect(engine).get_table_names()


class TestBuildCheckoutEvent:
    def test_event_parses_as_checkout_completed(self):
        event = build_checkout_event(session_id="cs_test_fixed", preview_id="abcd1234")
        parsed = parse_event(json.dumps(event).encode())

        assert parsed.kind is EventKind.CHECKOUT_SESSION_COMPLETED
        session = parsed.data.object
        assert session["id"] == "cs_test_fixed"
        assert session["metadata"]["preview_id"] == "abcd1234"
        assert json.loads(session["metadata"]["form_data"]) == SAMPLE_FORM_DATA

    def test_random_session_ids(self):
        a = build_checkout_event()["data"]["object"]["id"]
        b = build_checkout_event()["data"]["object"]["id"]
        assert a != b


class TestSend:
    @patch("gradspeech.scripts.send_test_webhook.requests.post")
    def test_signed_request(self, mock_post):
        mock_post.return_value = MagicMock(status_code=200)
        event = build_checkout_event()

        send("http://hook", event, secret="whsec_x", test_mode=False)

        kwargs = mock_post.call_args.kwargs
        assert verify(kwargs["data"], kwargs["headers"]["stripe-signature"], "whsec_x") is True
        assert "x-test-mode" not in kwargs["headers"]

    @patch("gradspeech.scripts.send_test_webhook.requests.post")
    def test_test_mode_request(self, mock_post):
        send("http://hook", build_checkout_event(), secret="whsec_x", test_mode=True)

        headers = mock_post.call_args.kwargs["headers"]
        assert headers["x-test-mode"] == "true"
        assert "stripe-signature" not in headers
