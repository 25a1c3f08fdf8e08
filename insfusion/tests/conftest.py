def pytest_configure(config):
    config.addinivalue_line("markers", "slow: long end-to-end navigation runs")
