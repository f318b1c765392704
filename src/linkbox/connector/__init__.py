"""
The connector package owns the active conduit. The ConnectionManager opens, writes to and closes
one conduit at a time, and runs a background read loop for serial conduits that posts the
received bytes as events.
"""
