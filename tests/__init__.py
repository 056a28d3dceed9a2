# Stock ledger test suite
#
# This package contains:
# - Server tests (pytest, Flask test client, in-memory SQLite)
# - Concurrency tests (threads against a file-backed SQLite database)
# - Device tests (stock cap, cache, cart, outbox, sync over httpx.MockTransport)
# - Stress/load tests (Locust)
#
# Run with: python -m tests.run [quick|full|stress]
