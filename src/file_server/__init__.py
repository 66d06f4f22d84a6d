"""
FileServer
==========

WebSocket upload server for image and video attachments.

Clients open a WebSocket connection, send a JSON metadata message, then
stream the file as binary frames. Each upload is authenticated against
the attachment service before anything touches the disk.

Components:
    - protocol: Hand-rolled WebSocket handshake, codec and reassembly
    - upload: Session state machine and destination store
    - auth: Authentication backends (HTTP, mock)
    - transport: asyncio TCP listener and per-connection read loop
    - observability: Metrics and progress reporting

Example:
    # Run the ops API, which starts the upload listener
    python -m file_server.main
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
