"""
Session handling for the wiki API client.

Design goals:
- One auth policy per process (local, basic or hybrid), chosen from config.
- Credentials cached locally with an absolute expiry; stale records self-purge.
- Startup never fails because of a missing or rejected session.
"""
