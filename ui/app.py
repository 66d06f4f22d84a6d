"""
FileServer Ops Dashboard
========================

A small operator console for the upload server.

Architecture:
    - COUNTERS come from the ops API via HTTP (/health, /ready, /metrics)
    - TEST UPLOADS go straight to the upload listener over WebSocket,
      using the same client as scripts/upload_client.py

Usage:
    streamlit run ui/app.py

Environment:
    FILE_SERVER_OPS_URL  : ops HTTP root      (default: http://localhost:8080)
    FILE_SERVER_URL      : upload WebSocket   (default: ws://localhost:11000)
"""

import asyncio
import mimetypes
import os
import time
from typing import Optional

import requests
import streamlit as st

from file_server.client import upload_bytes
from file_server.observability import format_size

# =============================================================================
# Configuration
# =============================================================================

OPS_URL = os.getenv("FILE_SERVER_OPS_URL", "http://localhost:8080")
UPLOAD_URL = os.getenv("FILE_SERVER_URL", "ws://localhost:11000")

st.set_page_config(
    page_title="FileServer Ops",
    page_icon="📦",
    layout="wide",
)


# =============================================================================
# Networking helpers
# =============================================================================

def fetch_json(path: str) -> Optional[dict]:
    """GET an ops endpoint, None when unreachable or not 200."""
    try:
        r = requests.get(f"{OPS_URL}{path}", timeout=2)
    except requests.RequestException:
        return None
    if r.status_code != 200:
        return None
    return r.json()


def fetch_health() -> bool:
    return fetch_json("/health") is not None


# =============================================================================
# Main UI
# =============================================================================

def main():
    # ── Sidebar ───────────────────────────────────────────────────────────────
    with st.sidebar:
        st.header("Config (read-only)")
        st.text(f"Ops:     {OPS_URL}")
        st.text(f"Upload:  {UPLOAD_URL}")

        st.divider()
        auto_refresh = st.checkbox("Auto refresh", value=False)
        refresh_rate = st.slider("Refresh (s)", 1.0, 10.0, 2.0, 0.5)

    # ── Top Bar ───────────────────────────────────────────────────────────────
    top1, top2, top3 = st.columns(3)

    with top1:
        if fetch_health():
            st.success("🟢 Server Online")
        else:
            st.error("🔴 Server Offline")

    ready = fetch_json("/ready")
    with top2:
        if ready:
            st.success(f"🟢 Listening on :{ready.get('upload_port')}")
        else:
            st.warning("🟡 Listener not ready")

    root_info = fetch_json("/")
    with top3:
        if root_info:
            st.markdown(f"**Auth:** `{root_info.get('auth_backend', '-').upper()}`")
            st.caption(", ".join(root_info.get("mime_types", [])))
        else:
            st.markdown("**Auth:** `-`")

    st.divider()

    # ── Counters + Test Upload ───────────────────────────────────────────────
    left_col, right_col = st.columns([2, 1])

    metrics = fetch_json("/metrics")
    with left_col:
        st.subheader("Connections")
        if metrics:
            c1, c2, c3 = st.columns(3)
            c1.metric("Accepted", metrics.get("connections_accepted", 0))
            c2.metric("Active", metrics.get("active_connections", 0))
            c3.metric("Probes", metrics.get("probes_ignored", 0))

            st.subheader("Uploads")
            u1, u2, u3 = st.columns(3)
            u1.metric("Completed", metrics.get("uploads_completed", 0))
            u2.metric("Aborted", metrics.get("uploads_aborted", 0))
            u3.metric("Received", format_size(metrics.get("bytes_received", 0)))

            st.subheader("Errors")
            e1, e2, e3 = st.columns(3)
            e1.metric("Handshake", metrics.get("handshake_failures", 0))
            e2.metric("Protocol", metrics.get("protocol_errors", 0))
            e3.metric("I/O", metrics.get("io_errors", 0))

            rejections = metrics.get("rejections") or {}
            if rejections:
                st.caption("Rejections by reason")
                st.table({"reason": list(rejections), "count": list(rejections.values())})
        else:
            st.warning("No metrics available")

    with right_col:
        st.subheader("Test Upload")
        uploaded = st.file_uploader("File", type=["png", "jpg", "jpeg", "mp4"])
        upload_id = st.number_input("Attachment id", min_value=0, step=1, value=1)
        token = st.text_input("Token", type="password")

        if st.button("⬆ Upload", disabled=uploaded is None, use_container_width=True):
            data = uploaded.getvalue()
            mime_type = uploaded.type or mimetypes.guess_type(uploaded.name)[0]
            with st.spinner(f"Uploading {format_size(len(data))}…"):
                result = asyncio.run(upload_bytes(
                    UPLOAD_URL,
                    data,
                    upload_id=int(upload_id),
                    mime_type=mime_type,
                    token=token,
                ))
            if result.success:
                st.success(f"Stored ({result.close_code})")
            else:
                st.error(f"Rejected: {result.close_code} {result.close_reason}")

    # ── Auto-refresh ──────────────────────────────────────────────────────────
    if auto_refresh:
        time.sleep(refresh_rate)
        st.rerun()


if __name__ == "__main__":
    main()
