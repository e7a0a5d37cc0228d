#!/usr/bin/env python3
"""Mock wiki API server for local development (profile + registration)."""

import sys

from flask import Flask, jsonify, request

app = Flask(__name__)

# login -> {password, profile}
USERS = {
    "archmagos": {
        "password": "omnissiah",
        "profile": {"user_id": 1, "name": "Archmagos", "ava": "", "authored": 3, "totalArticles": 3},
    },
}


def _current_user():
    auth = request.authorization
    if auth is None or auth.type != "basic":
        return None
    user = USERS.get(auth.username or "")
    if user is None or user["password"] != auth.password:
        return None
    return user


@app.route("/myProfile", methods=["GET"])
def my_profile():
    """Return the caller's profile, 401 without valid Basic credentials."""
    user = _current_user()
    if user is None:
        # No WWW-Authenticate header: avoid native browser auth popups.
        return jsonify({"detail": "Not authenticated"}), 401
    return jsonify(user["profile"])


@app.route("/register", methods=["POST"])
def register():
    """Create a user; 409 if the login is taken."""
    body = request.get_json(silent=True) or {}
    login = str(body.get("login") or "").strip()
    password = str(body.get("password") or "")
    if not login or not password:
        return jsonify({"detail": "login and password required"}), 400
    if login in USERS:
        return jsonify({"detail": "login taken"}), 409
    new_id = len(USERS) + 1
    USERS[login] = {
        "password": password,
        "profile": {"user_id": new_id, "name": body.get("name") or login, "ava": body.get("ava") or ""},
    }
    return jsonify({"ok": True, "created_id": new_id})


@app.route("/healthz")
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok"})


if __name__ == "__main__":
    print("Mock wiki API starting on http://0.0.0.0:8000", file=sys.stderr)
    app.run(host="0.0.0.0", port=8000, debug=False)
