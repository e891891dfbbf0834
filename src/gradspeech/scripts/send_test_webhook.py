"""
결제 성공 시뮬레이터: checkout.session.completed 샘플 이벤트를 webhook으로 보낸다.

    python -m gradspeech.scripts.send_test_webhook --url http://localhost:8000/api/v1/stripe/webhook
    python -m gradspeech.scripts.send_test_webhook --test-mode   # 서명 없이 x-test-mode
"""
from __future__ import annotations

import argparse
import json
import time
import uuid
from typing import Any

import requests

from gradspeech.core.config import Settings
from gradspeech.integrations.stripe.signature import sign

DEFAULT_URL = "http://localhost:8000/api/v1/stripe/webhook"

SAMPLE_FORM_DATA: dict[str, Any] = {
    "name": "Jordan Lee",
    "role": "Valedictorian",
    "institution": "Westfield High School",
    "graduationType": "High School",
    "tone": "Inspirational",
    "keyPoints": "Perseverance, friendship",
    "memories": "The robotics championship",
    "acknowledgements": "Teachers and family",
    "additionalInfo": "",
    "email": "jordan@example.com",
}


def build_checkout_event(
    *,
    form_data: dict[str, Any] | None = None,
    session_id: str | None = None,
    preview_id: str | None = None,
) -> dict[str, Any]:
    form = form_data if form_data is not None else SAMPLE_FORM_DATA
    metadata = {"form_data": json.dumps(form)}
    if preview_id:
        metadata["preview_id"] = preview_id

    return {
        "id": f"evt_test_{uuid.uuid4().hex[:16]}",
        "object": "event",
        "type": "checkout.session.completed",
        "created": int(time.time()),
        "livemode": False,
        "data": {
            "object": {
                "id": session_id or f"cs_test_{uuid.uuid4().hex[:24]}",
                "object": "checkout.session",
                "amount_total": 999,
                "currency": "usd",
                "customer_details": {"email": form.get("email")},
                "metadata": metadata,
            }
        },
    }


def send(url: str, event: dict[str, Any], *, secret: str | None, test_mode: bool) -> requests.Response:
    body = json.dumps(event).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    if test_mode:
        headers["x-test-mode"] = "true"
    elif secret:
        headers["stripe-signature"] = sign(body, secret)

    return requests.post(url, data=body, headers=headers, timeout=10)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send a sample checkout.session.completed webhook")
    parser.add_argument("--url", default=DEFAULT_URL)
    parser.add_argument("--session-id", default=None)
    parser.add_argument("--preview-id", default=None)
    parser.add_argument("--test-mode", action="store_true", help="send x-test-mode instead of a signature")
    args = parser.parse_args(argv)

    settings = Settings()
    secret = settings.stripe_webhook_secret.get_secret_value() if settings.stripe_webhook_secret else None
    if not args.test_mode and not secret:
        print("❌ STRIPE_WEBHOOK_SECRET is not set (use --test-mode to skip signing)")
        return 1

    event = build_checkout_event(session_id=args.session_id, preview_id=args.preview_id)
    resp = send(args.url, event, secret=secret, test_mode=args.test_mode)
    print(f"{resp.status_code} {resp.text}")
    return 0 if resp.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
