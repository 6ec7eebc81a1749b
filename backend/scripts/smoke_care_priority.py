#!/usr/bin/env python3
"""
scripts/smoke_care_priority.py
------------------------------
Smoke test against a running backend. Verifies that:
  1. A user with a profile and no data is ROUTINE
  2. A severe-range reading moves the user to EMERGENCY
  3. GET /care-priority is read-only (the answer is stable across calls)
  4. A missing x-user-id header is rejected with 401

Each run uses a fresh random user id so it never collides with real data.
Run it while the FastAPI dev server is running:

    # Terminal 1 - backend running
    uvicorn app.main:app --reload

    # Terminal 2 - run this script
    python scripts/smoke_care_priority.py [BASE_URL]

ALL checks pass → exits 0
ANY check fails → exits 1
"""

from __future__ import annotations

import sys
import uuid

import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
USER_ID  = f"smoke-{uuid.uuid4().hex[:8]}"
HEADERS  = {"x-user-id": USER_ID}

PROFILE = {
    "age_range":        "AGE_20_34",
    "pregnancy_weeks":  28,
    "first_pregnancy":  True,
    "known_conditions": [],
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def get_priority(client: httpx.Client) -> dict:
    resp = client.get("/care-priority", headers=HEADERS)
    resp.raise_for_status()
    return resp.json()


def check(label: str, condition: bool, detail: str = "") -> None:
    """Print a pass/fail line and raise on failure."""
    icon = "✅" if condition else "❌"
    print(f"  {icon}  {label}", f"({detail})" if detail else "")
    if not condition:
        raise AssertionError(f"FAILED: {label}  {detail}")


# ---------------------------------------------------------------------------
# Checks
# ---------------------------------------------------------------------------


def check_routine(client: httpx.Client) -> None:
    print("\n🟢 Check 1: profile only → expect ROUTINE")
    resp = client.put("/profile", json=PROFILE, headers=HEADERS)
    check("profile saved", resp.status_code == 200, f"got: {resp.status_code}")

    body = get_priority(client)
    check("priority == ROUTINE", body["priority"] == "ROUTINE", f"got: {body['priority']}")
    check("message is non-empty", bool(body.get("message")))


def check_emergency(client: httpx.Client) -> None:
    print("\n🔴 Check 2: 165/112 reading → expect EMERGENCY")
    resp = client.post(
        "/blood-pressure", json={"systolic": 165, "diastolic": 112}, headers=HEADERS
    )
    check("reading stored (201)", resp.status_code == 201, f"got: {resp.status_code}")

    body = get_priority(client)
    check("priority == EMERGENCY", body["priority"] == "EMERGENCY", f"got: {body['priority']}")
    check(
        "severe hypertension reason present",
        "Blood pressure reading indicates severe hypertension" in body["reasons"],
        f"got: {body['reasons']}",
    )
    print(f"\n     message: {body['message'][:120]}")


def check_read_only(client: httpx.Client) -> None:
    print("\n🔁 Check 3: repeated reads → same answer")
    first, second = get_priority(client), get_priority(client)
    check("priority stable", first["priority"] == second["priority"])
    check("reasons stable", first["reasons"] == second["reasons"])


def check_identity(client: httpx.Client) -> None:
    print("\n⚠️  Check 4: missing x-user-id → expect 401")
    resp = client.get("/care-priority")
    check("HTTP 401", resp.status_code == 401, f"got: {resp.status_code}")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    print("=" * 60)
    print("  Care Priority API smoke test")
    print("  Target:", BASE_URL, " user:", USER_ID)
    print("=" * 60)

    try:
        with httpx.Client(base_url=BASE_URL, timeout=10.0) as client:
            for step in (check_routine, check_emergency, check_read_only, check_identity):
                step(client)

        print("\n" + "=" * 60)
        print("  ✅  ALL CHECKS PASSED")
        print("=" * 60)
        sys.exit(0)

    except AssertionError as exc:
        print("\n" + "=" * 60)
        print(f"  ❌  CHECK FAILED: {exc}")
        print("=" * 60)
        sys.exit(1)

    except httpx.ConnectError:
        print("\n❌  Cannot reach", BASE_URL)
        print("   → Make sure the backend is running:  uvicorn app.main:app --reload")
        sys.exit(1)


if __name__ == "__main__":
    main()
