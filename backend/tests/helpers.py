"""Shared test data and token helpers."""

from datetime import datetime, timedelta, timezone

import jwt

TEST_JWT_SECRET = "test-jwt-secret-with-enough-length-for-hs256"

SAMPLE_RESULT = {
    "overall_score": 40,
    "one_liner": "Generic and forgettable.",
    "first_impression": {
        "roast": "Reads like a template nobody finished.",
        "fix": "Lead with a two-line summary of what you actually do.",
    },
    "skills_section": {
        "roast": "Microsoft Word is not a personality.",
        "fix": "List the tools you used to ship something real.",
    },
    "work_experience": {
        "roast": "Every bullet says 'responsible for'.",
        "fix": "Rewrite each bullet around an outcome with a number.",
    },
    "red_flags": [],
    "top_fixes": ["Add metrics", "Cut objective statement"],
}


def make_token(user_id, email="user@example.com", metadata=None, expires_in=3600,
               secret=TEST_JWT_SECRET, audience="authenticated") -> str:
    """Sign an access token the way the auth provider does."""
    payload = {
        "sub": str(user_id),
        "email": email,
        "aud": audience,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        "user_metadata": metadata or {},
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id, email="user@example.com", metadata=None) -> dict:
    return {"Authorization": f"Bearer {make_token(user_id, email, metadata)}"}
