"""Global test fixtures."""

import os

import logfire

# Secrets must be set before any test module builds a Config from the environment
os.environ.setdefault("VIDACURE_AUTH__SESSION__SECRET", "test-session-secret-for-unit-tests-32")
os.environ.setdefault("VIDACURE_AUTH__SSN_HASH_SECRET", "test-ssn-hash-secret")
os.environ.setdefault("VIDACURE_DATABASE__URL", "sqlite+aiosqlite:///:memory:")

# Instrumentation calls in create_app need a configured (offline) logfire
logfire.configure(send_to_logfire=False, console=False)
