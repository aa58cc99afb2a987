"""
Vote tally web service.

Identity cache, candidate registry, live counters and keyword rankings on
Redis, with PostgreSQL as the durable source for citizens and candidates.
"""
