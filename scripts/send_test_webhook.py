#!/usr/bin/env python3
"""Drive a test subscription through its lifecycle against a running service.

Creates a test subscription through the ``/test`` landing page, confirms the
purchase and then sends a webhook notification to ``/webhook/test``. Nothing
is sent to the marketplace; the subscription lives in the service's
subscription cache.

------------------------------------------------------------------------
Prerequisites
------------------------------------------------------------------------

The service must be running with test mode enabled:

    TEST_MODE_ENABLED=true saas-lifecycle

The test endpoints require the admin scope. Either pass a token that
carries it with ``--token``, or run the service with
``SKIP_JWT_VALIDATION=true`` and use ``--dev-mode``.

------------------------------------------------------------------------
Usage
------------------------------------------------------------------------

    # Purchase a test subscription and unsubscribe it:
    python scripts/send_test_webhook.py --dev-mode \\
        --subscription-id 3f1c7a52-test \\
        --action Unsubscribe

    # Change plan on an existing test subscription:
    python scripts/send_test_webhook.py --dev-mode --skip-purchase \\
        --subscription-id 3f1c7a52-test \\
        --action ChangePlan --plan-id gold

    # Or use environment variables:
    export SERVICE_URL=http://localhost:8000
    export ACCESS_TOKEN=<TOKEN>
    python scripts/send_test_webhook.py --subscription-id 3f1c7a52-test
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import uuid

import httpx

ACTIONS = ["Unsubscribe", "ChangePlan", "ChangeQuantity", "Suspend", "Reinstate"]


def _print_response(response: httpx.Response) -> None:
    print(f"<<< {response.status_code}")
    location = response.headers.get("location")
    if location:
        print(f"    Location: {location}")
    try:
        print(json.dumps(response.json(), indent=2))
    except ValueError:
        if response.text:
            print(response.text)


def purchase_test_subscription(
    client: httpx.Client, subscription_id: str, plan_id: str | None
) -> bool:
    """Open the test landing page and confirm the purchase."""
    params = {"subscriptionId": subscription_id}
    if plan_id:
        params["planId"] = plan_id

    print(f"\n>>> GET /test?{httpx.QueryParams(params)}")
    response = client.get("/test", params=params)
    _print_response(response)
    if response.status_code != 200:
        return False

    print("\n>>> POST /test")
    response = client.post("/test", data={"subscriptionId": subscription_id})
    _print_response(response)
    return response.status_code in (200, 302)


def send_webhook(client: httpx.Client, notification: dict) -> bool:
    """Send a webhook notification for a test subscription."""
    print("\n>>> POST /webhook/test")
    print(json.dumps(notification, indent=2))
    response = client.post("/webhook/test", json=notification)
    _print_response(response)
    return response.status_code == 200


def build_notification(args: argparse.Namespace) -> dict:
    notification = {
        "id": args.operation_id or str(uuid.uuid4()),
        "activityId": str(uuid.uuid4()),
        "subscriptionId": args.subscription_id,
        "action": args.action,
        "status": "InProgress",
    }
    if args.plan_id:
        notification["planId"] = args.plan_id
    if args.quantity is not None:
        notification["quantity"] = args.quantity
    return notification


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Drive a test subscription through its lifecycle",
    )
    parser.add_argument(
        "--service-url",
        default=os.environ.get("SERVICE_URL", "http://localhost:8000"),
    )
    parser.add_argument("--token", default=os.environ.get("ACCESS_TOKEN", ""))
    parser.add_argument(
        "--dev-mode",
        action="store_true",
        help="Use a dummy token (service must have SKIP_JWT_VALIDATION=true)",
    )
    parser.add_argument(
        "--subscription-id",
        default=f"test-{uuid.uuid4()}",
        help="Test subscription ID (a new one is generated by default)",
    )
    parser.add_argument("--action", choices=ACTIONS, default="Unsubscribe")
    parser.add_argument("--plan-id", default=None)
    parser.add_argument("--quantity", type=int, default=None)
    parser.add_argument("--operation-id", default=None)
    parser.add_argument(
        "--skip-purchase",
        action="store_true",
        help="Only send the webhook; the subscription must already be cached",
    )
    return parser


def main() -> None:
    args = build_parser().parse_args()

    if args.dev_mode:
        token = "dev-token"
        print("Using dummy dev token (service must have SKIP_JWT_VALIDATION=true)")
    elif args.token:
        token = args.token
    else:
        print("ERROR: --token required (or use --dev-mode)", file=sys.stderr)
        sys.exit(1)

    print("=" * 60)
    print("Test Subscription Lifecycle")
    print("=" * 60)
    print(f"  Service URL    : {args.service_url}")
    print(f"  Subscription ID: {args.subscription_id}")
    print(f"  Action         : {args.action}")

    with httpx.Client(
        base_url=args.service_url,
        headers={"Authorization": f"Bearer {token}"},
        timeout=30,
    ) as client:
        if not args.skip_purchase:
            print("\n--- Purchasing test subscription ---")
            if not purchase_test_subscription(client, args.subscription_id, args.plan_id):
                print("\nTest purchase failed.", file=sys.stderr)
                sys.exit(1)

        print("\n--- Sending webhook ---")
        if not send_webhook(client, build_notification(args)):
            print("\nWebhook failed.", file=sys.stderr)
            sys.exit(1)

    print("\nDone.")


if __name__ == "__main__":
    main()
