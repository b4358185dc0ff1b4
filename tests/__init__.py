"""
CT STH Monitor - Test Suite

Test Organization:
- test_models.py: STH parsing and audit record models
- test_signature.py / test_validator.py: STH validation
- test_recorder.py / test_pipeline.py: one fetch-check-store cycle
- test_scheduler.py / test_service.py: periodic scheduling and wiring
- test_storage.py: SQLite and echo backends
- test_http_client.py / test_mock_client.py: fetch collaborators
- test_config.py / test_utils.py / test_cli.py: ambient stack

Fixtures are in tests/fixtures/:
- factories.py: STHFactory for signed test STHs
- fakes.py: scripted fetchers and recording sinks

Run tests:
    $ pdm run pytest tests/ -v
"""
