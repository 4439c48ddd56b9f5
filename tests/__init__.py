"""
protopack Test Suite
====================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/           → protopack.core (models, manifest, config, exceptions)
    ├── test_infrastructure/ → protopack.infrastructure (package store, credentials)
    ├── test_integrations/   → protopack.integrations (registry transports)
    ├── test_facade.py       → Command facade, end to end on tmp_path
    ├── test_cli.py          → click commands via CliRunner
    └── conftest.py          → Shared pytest fixtures

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_core/         # Run only core tests
"""
