"""Integration tests for QuickVote against a real Redis.

These tests exercise the session manager through ``RedisStore`` and check
the exact key layout shared by every replica. They are skipped when Redis
is not reachable.
"""
