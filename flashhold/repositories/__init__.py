"""
Query helpers for the reservation tables.

Every function takes the caller's AsyncSession, so it runs inside the
caller's transaction. The *_for_update variants take an exclusive row
lock that is held until that transaction ends, and refresh any copy of
the row already in the session's identity map.
"""
