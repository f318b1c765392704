"""
Small helpers shared by the conduit and connector packages: event sources and value-object mixins.
"""
