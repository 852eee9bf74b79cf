"""
Pytest configuration for wellness-service tests
"""


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as an asyncio test."
    )
