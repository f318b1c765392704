"""
Integration tests that exercise the connection manager against real sockets and serial devices.
Configure a hardware serial port in manager_integration_test.cfg or ~/manager_integration_test.cfg.
"""
