"""
Transport Module
================

TCP side of the upload server.

Components:
    - UploadServer: asyncio listener, one task per connection
    - ConnectionHandler: Per-connection read loop wiring buffer,
      reassembler and session together

Example:
    from file_server.transport import UploadServer

    server = UploadServer(host="0.0.0.0", port=11000, authenticator=auth, store=store)
    await server.serve_forever()
"""

from file_server.transport.connection import ConnectionHandler
from file_server.transport.server import UploadServer

__all__ = [
    "ConnectionHandler",
    "UploadServer",
]
