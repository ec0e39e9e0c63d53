import os
from typing import Any, Sequence

import requests
import streamlit as st

API_BASE = os.getenv("PPT_SERVICE_API_BASE", os.getenv("API_BASE", "http://localhost:3000")).rstrip("/")
REQUEST_TIMEOUT = float(os.getenv("PPT_SERVICE_UI_TIMEOUT", "600"))
PPT_MIME = {
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
}


def _mime_for(name: str, declared: str | None) -> str:
    ext = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    return PPT_MIME.get(ext) or declared or "application/octet-stream"


def _pdf_name(original_name: str) -> str:
    stem = original_name.rsplit(".", 1)[0] if "." in original_name else original_name
    return f"{stem}.pdf"


def _convert_files(uploads: Sequence[Any]) -> tuple[list[dict[str, str]] | None, str | None]:
    """Post uploaded files to /convert-multiple. Returns (results, error)."""
    files = [
        ("pptFiles", (u.name, u.getvalue(), _mime_for(u.name, getattr(u, "type", None))))
        for u in uploads
    ]
    try:
        resp = requests.post(f"{API_BASE}/convert-multiple", files=files, timeout=REQUEST_TIMEOUT)
    except requests.RequestException as e:
        return None, f"Failed to connect to API: {e}"
    if resp.status_code != 200:
        try:
            message = resp.json().get("error", resp.text)
        except ValueError:
            message = resp.text
        return None, f"Conversion failed: {resp.status_code} {message}"
    return list(resp.json().get("results", [])), None


def _fetch_pdf(download_link: str) -> bytes | None:
    try:
        resp = requests.get(f"{API_BASE}{download_link}", timeout=60)
    except requests.RequestException:
        return None
    if resp.status_code != 200:
        return None
    return resp.content


def _reset_state() -> None:
    for key in ("results", "error"):
        st.session_state.pop(key, None)
    st.session_state["upload_key"] = st.session_state.get("upload_key", 0) + 1


def main() -> None:
    st.set_page_config(page_title="PowerPoint to PDF", page_icon="📄", layout="centered")
    st.title("📄 PowerPoint to PDF")
    st.caption(f"API base: {API_BASE}")

    if st.button("Restart", type="secondary"):
        _reset_state()
        st.rerun()

    if "upload_key" not in st.session_state:
        st.session_state["upload_key"] = 0
    uploaded = st.file_uploader(
        "Upload presentations (.ppt, .pptx)",
        type=["ppt", "pptx"],
        accept_multiple_files=True,
        key=f"uploader-{st.session_state['upload_key']}",
    )

    if uploaded and st.button("Convert to PDF", type="primary"):
        with st.spinner("Converting..."):
            results, error = _convert_files(uploaded)
        st.session_state["results"] = results
        st.session_state["error"] = error

    if err := st.session_state.get("error"):
        st.error("Failed to convert files. Please try again.")
        with st.expander("Details"):
            st.write(err)

    for result in st.session_state.get("results") or []:
        name = result.get("originalName", "file")
        link = result.get("downloadLink")
        if link:
            data = _fetch_pdf(link)
            if data is None:
                st.warning(f"{name}: converted, but the PDF could not be fetched")
                continue
            st.download_button(
                label=f"Download {_pdf_name(name)}",
                data=data,
                file_name=_pdf_name(name),
                mime="application/pdf",
                key=f"download-{link}",
            )
        else:
            st.error(f"{name}: {result.get('error', 'Failed to convert file')}")


if __name__ == "__main__":
    main()
