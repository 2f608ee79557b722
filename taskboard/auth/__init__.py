"""
Authentication helpers for the task board.

Design goals:
- Sign-in is delegated to the identity provider; we only keep the token it hands back.
- Cookie-based session (HttpOnly); the cookie's presence is the session.
- Route access is decided before any page renders.
"""
