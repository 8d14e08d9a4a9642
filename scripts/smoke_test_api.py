"""
Manual smoke test for the access API.
Start the server and seed it first:
    python scripts/seed_demo_data.py && python -m accessgate.api.app
Then run: python scripts/smoke_test_api.py
"""

import json
import os

import requests

from accessgate.api.auth import generate_token
from accessgate.models import UserContext

BASE_URL = os.getenv("ACCESSGATE_URL", "http://localhost:8000")


def banner(title):
    print("\n" + "=" * 50)
    print(f"CHECK: {title}")
    print("=" * 50)


def show(response):
    print(f"Status Code: {response.status_code}")
    print(f"Response: {json.dumps(response.json(), indent=2)[:1500]}")


def auth(token):
    return {"Authorization": f"Bearer {token}"} if token else {}


def check_health():
    banner("Health Check")
    response = requests.get(f"{BASE_URL}/health")
    show(response)
    return response.status_code == 200


def check_anonymous_admin_denied():
    banner("Anonymous visitor on /admin/users")
    response = requests.post(f"{BASE_URL}/api/access/check", json={"route": "/admin/users"})
    show(response)
    data = response.json()
    return response.status_code == 200 and data.get("reason") == "not_authenticated"


def check_public_store(token):
    banner("Client on /store/cards")
    response = requests.post(
        f"{BASE_URL}/api/access/check", headers=auth(token), json={"route": "/store/cards"}
    )
    show(response)
    return response.status_code == 200 and response.json().get("allowed") is True


def check_navigation(token):
    banner("Navigation menu for a client")
    items = [
        {"path": "/dashboard/client", "label": "Dashboard"},
        {"path": "/admin/users", "label": "Users"},
        {"path": "/store/cards", "label": "Store"},
    ]
    response = requests.post(
        f"{BASE_URL}/api/access/navigation", headers=auth(token), json={"items": items}
    )
    show(response)
    return response.status_code == 200


def check_content(token):
    banner("Dashboard sections for a client")
    response = requests.post(
        f"{BASE_URL}/api/access/content",
        headers=auth(token),
        json={
            "content_type": "section",
            "items": [{"id": "earnings"}, {"id": "beta-tools"}, {"id": "documents"}],
        },
    )
    show(response)
    return response.status_code == 200


def check_admin_endpoints(admin_token, client_token):
    banner("Restriction list (admin vs client)")
    as_admin = requests.get(f"{BASE_URL}/api/restrictions/page", headers=auth(admin_token))
    as_client = requests.get(f"{BASE_URL}/api/restrictions/page", headers=auth(client_token))
    print(f"Admin: {as_admin.status_code}, Client: {as_client.status_code}")
    return as_admin.status_code == 200 and as_client.status_code == 403


def check_logs(admin_token):
    banner("Blocked attempt summary")
    response = requests.get(
        f"{BASE_URL}/api/restrictions/logs/summary", headers=auth(admin_token)
    )
    print(f"Status Code: {response.status_code}")
    if response.status_code == 200:
        print(response.json().get("summary"))
    return response.status_code == 200


def main():
    print("=" * 50)
    print("accessgate API Smoke Test")
    print("=" * 50)
    print(f"Base URL: {BASE_URL}")
    print("Make sure the API server is running!")

    admin_token = generate_token(UserContext("1", "smoke-admin", "admin", True))
    client_token = generate_token(UserContext("2", "smoke-client", "client", True))

    results = {}
    try:
        results["Health Check"] = check_health()
        results["Anonymous Admin Denied"] = check_anonymous_admin_denied()
        results["Public Store"] = check_public_store(client_token)
        results["Navigation"] = check_navigation(client_token)
        results["Content"] = check_content(client_token)
        results["Admin Endpoints"] = check_admin_endpoints(admin_token, client_token)
        results["Access Logs"] = check_logs(admin_token)
    except requests.RequestException as e:
        print(f"\n\nERROR: {e}")

    print("\n" + "=" * 50)
    print("SUMMARY")
    print("=" * 50)
    passed = sum(1 for v in results.values() if v)
    for name, ok in results.items():
        status = "✓ PASS" if ok else "✗ FAIL"
        print(f"{status}: {name}")
    print(f"\nTotal: {passed}/{len(results)} checks passed")
    print("=" * 50)


if __name__ == "__main__":
    main()
