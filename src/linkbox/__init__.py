"""
Connection management for a single serial port, TCP socket or UDP socket.

- Conduit: an open channel over one medium. Serial, TCP and connected UDP conduits expose the same
  write/read/close/describe operations. Conduits are opened by per-kind factories from a connection config
  (SerialConfig, TCPConfig, UDPConfig).
- SerialEnumerator: lists the serial ports present on the host, afresh on each call.
- ReadLoop: a background thread that reads from a serial conduit and fires ("serial:data", bytes) events.
- ConnectionManager: owns at most one conduit. Connecting replaces whatever is open. It is the entry
  point for connecting, writing, closing and listing serial ports.


## Threading

All manager operations run on the caller's thread and are serialized by a single lock.

The serial read loop runs on its own daemon thread and does not take the manager lock. Reads use a short
timeout (100ms by default) so the loop sees a stop request within one timeout. The manager stops the
loop and waits for its thread before closing the port, so no data event follows "serial:disconnected".

Data events are fired on the read loop thread. A UI that wants events on its own thread can pass a
QueuedEventSource and call publish() from its event loop.

TCP and UDP conduits are written to but not read from; no read loop is started for them.


## Configuration

Connection defaults live in config/linkbox.default.cfg, validated by config/linkbox.schema.cfg, and can be
overridden per platform or per user (~/linkbox.cfg). See linkbox.config.config.load_settings().
"""
