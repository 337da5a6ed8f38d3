"""
Cross-cutting building blocks for the API.

`core/` holds the pieces every route depends on (settings, DB pool, logging,
client address resolution, rate limiting, server bootstrap). Query-log SQL
and request handling live in `queries/`.
"""
