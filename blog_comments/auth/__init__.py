"""Caller principal resolution.

Tokens are issued by the main blog backend; this service only verifies them
and turns the claims into a ``Principal``.
"""
