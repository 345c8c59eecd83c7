"""JSON-RPC daemon: protocol, method table, socket server, events and client."""
