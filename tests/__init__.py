"""
pulsar-deploy Test Suite
========================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/           → Tests for pulsar_deploy.core (config, models, state)
    ├── test_infrastructure/ → Tests for pulsar_deploy.infrastructure (state store)
    ├── test_integrations/   → Tests for pulsar_deploy.integrations (stellar CLI, mock, build)
    ├── test_orchestration/  → Tests for pulsar_deploy.orchestration (adapter, planners, pipeline)
    ├── test_*.py            → Catalog, facade, reporting, logging and CLI
    └── conftest.py          → Shared pytest fixtures

Running Tests:
    pytest                          # Run all tests
    pytest tests/test_orchestration # Run only orchestration tests
    pytest --cov=pulsar_deploy      # Run with coverage report
"""
