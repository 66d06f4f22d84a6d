#!/usr/bin/env python3
"""
Upload Client Script
====================

Command-line uploader for manual testing against a running server.

This script:
    1. Connects to the upload server over WebSocket
    2. Sends metadata and waits for acceptance
    3. Streams the file in chunks
    4. Reports the server's close code

Prerequisites:
    - The upload server must be running at the configured URL
    - Install the package: pip install -e .

Usage:
    python scripts/upload_client.py photo.png --id 5 --token secret
    python scripts/upload_client.py clip.mp4 --id 7 --token secret --url ws://host:11000
"""

import argparse
import asyncio
import logging
import os
import sys
import time

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from file_server.client import DEFAULT_CHUNK_SIZE, upload_file
from file_server.observability import format_size


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="Upload a file to the WebSocket upload server"
    )
    parser.add_argument("path", type=str, help="File to upload")
    parser.add_argument(
        "--url",
        type=str,
        default=os.environ.get("FILE_SERVER_URL", "ws://127.0.0.1:11000"),
        help="WebSocket URL of the upload server",
    )
    parser.add_argument("--id", type=int, required=True, help="Attachment id")
    parser.add_argument(
        "--token",
        type=str,
        default=os.environ.get("FILE_SERVER_TOKEN", ""),
        help="Bearer token for the attachment service",
    )
    parser.add_argument(
        "--mime-type",
        type=str,
        default=None,
        help="Content type (default: guessed from file name)",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Bytes per WebSocket message (default: {DEFAULT_CHUNK_SIZE})",
    )

    args = parser.parse_args()

    start_time = time.time()
    result = asyncio.run(upload_file(
        url=args.url,
        path=args.path,
        upload_id=args.id,
        token=args.token,
        mime_type=args.mime_type,
        chunk_size=args.chunk_size,
    ))
    elapsed = time.time() - start_time

    logger.info("=" * 60)
    logger.info(f"Accepted: {result.accepted}")
    logger.info(f"Sent: {format_size(result.bytes_sent)} in {elapsed:.1f}s")
    logger.info(f"Close: {result.close_code} {result.close_reason}")
    logger.info("=" * 60)

    if result.success:
        logger.info("✅ Upload stored")
    else:
        logger.error("❌ Upload rejected")

    sys.exit(0 if result.success else 1)


if __name__ == "__main__":
    main()
