"""
A configuration helper built on top of ConfigObj that allows configuration files to be
layered - neutral / os-specific / per-user, with a schema to validate the types of the config data.

The packaged 'linkbox' configuration holds the connection defaults. The same machinery can set
global values in modules, which we use for configuring integration test cases.
"""
