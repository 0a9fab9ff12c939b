"""Streamlit upload page for the PDF chunk dispatch service."""
import os
from typing import Optional

import requests
import streamlit as st

# Page configuration
st.set_page_config(
    page_title="PDF Chunk Dispatch",
    page_icon="📄",
    layout="centered",
    initial_sidebar_state="collapsed"
)

# API Configuration
BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")
SPLIT_URL = f"{BACKEND_URL}/api/pdf/split"
HEALTH_URL = f"{BACKEND_URL}/health"
PDF_MIME_TYPE = "application/pdf"

st.markdown("""
    <style>
        #MainMenu {visibility: hidden;}
        footer {visibility: hidden;}

        .main-header {
            text-align: center;
            padding: 1.5rem 0;
            border-bottom: 2px solid #e0e0e0;
            margin-bottom: 1.5rem;
        }

        .main-header p {
            color: #6b7280;
        }
    </style>
""", unsafe_allow_html=True)

if "last_result" not in st.session_state:
    st.session_state.last_result = None


def check_backend_health() -> bool:
    """Check if backend is running."""
    try:
        response = requests.get(HEALTH_URL, timeout=2)
        return response.status_code == 200
    except requests.exceptions.RequestException:
        return False


def format_file_size(size_bytes: int) -> str:
    """Render a byte count as B, KB or MB."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    if size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.2f} KB"
    return f"{size_bytes / (1024 * 1024):.2f} MB"


def split_document(file) -> Optional[dict]:
    """Upload a PDF to the split endpoint and return its JSON body."""
    try:
        files = {"file": (file.name, file.getvalue(), PDF_MIME_TYPE)}
        # The backend holds the request open until the webhook answers
        response = requests.post(SPLIT_URL, files=files, timeout=300)
        data = response.json()

        if response.status_code == 200:
            return data

        message = data.get("error", "Failed to process PDF")
        if data.get("details"):
            message = f"{message}: {data['details']}"
        st.error(message)
        return None
    except requests.exceptions.RequestException as e:
        st.error(f"Connection error: {str(e)}")
        return None
    except ValueError:
        st.error("Backend returned an invalid response")
        return None


def render_result(result: dict) -> None:
    """Show the dispatch outcome returned by the backend."""
    summary = result.get("summary", {})

    if result.get("success"):
        st.success(f"✓ {result.get('message')}")
    else:
        st.error(f"✗ {result.get('message')}")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total Pages", summary.get("totalPages", 0))
    col2.metric("Total Chunks", summary.get("totalChunks", 0))
    col3.metric("Pages per Chunk", summary.get("chunkSize", 0))
    col4.metric("Total Size", format_file_size(summary.get("totalSize", 0)))

    chunks = result.get("chunks", [])
    if chunks:
        st.subheader("Chunks")
        st.dataframe(
            [
                {
                    "Chunk": chunk["chunkNumber"],
                    "Pages": chunk["pageRange"],
                    "File": chunk["chunkFileName"],
                    "Size": format_file_size(chunk["fileSize"]),
                }
                for chunk in chunks
            ],
            hide_index=True,
            use_container_width=True,
        )

    if result.get("webhookResponse"):
        with st.expander("Webhook response"):
            webhook = result["webhookResponse"]
            st.caption(f"Status: {webhook.get('status')} {webhook.get('statusText', '')}")
            st.json(webhook.get("data"))

    if result.get("error"):
        with st.expander("Error details", expanded=True):
            st.json(result["error"])


st.markdown("""
    <div class="main-header">
        <h1>📄 PDF Chunk Dispatch</h1>
        <p>Upload a PDF statement to split it into page chunks and send them to the automation webhook</p>
    </div>
""", unsafe_allow_html=True)

if not check_backend_health():
    st.error(f"⚠️ Backend server is not running. Please start the backend server at {BACKEND_URL}")
    st.stop()

uploaded_file = st.file_uploader(
    "Choose a PDF file",
    type=["pdf"],
    help="The file is split into fixed-size page chunks on the server"
)

if uploaded_file is not None:
    if uploaded_file.type != PDF_MIME_TYPE:
        st.error("File must be a PDF")
    else:
        st.caption(f"{uploaded_file.name} ({format_file_size(uploaded_file.size)})")
        if st.button("Upload & Send", type="primary"):
            with st.spinner("Processing..."):
                st.session_state.last_result = split_document(uploaded_file)

if st.session_state.last_result:
    st.divider()
    render_result(st.session_state.last_result)
