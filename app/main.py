from __future__ import annotations

import base64

import streamlit as st

from page_organizer.adapters.pymupdf_adapter import PyMuPdfAdapter
from page_organizer.domain.models import BatchOperationResult, PageEntry
from page_organizer.infrastructure.config import AppConfig
from page_organizer.infrastructure.logging_config import setup_logging
from page_organizer.services.workspace_service import WorkspaceService

THUMBNAIL_WAIT_SECONDS = 1.5


def _init_workspace() -> WorkspaceService:
    if "workspace" not in st.session_state:
        config = AppConfig()
        setup_logging(config.log_level)
        st.session_state.workspace = WorkspaceService(PyMuPdfAdapter(), config)
    st.session_state.setdefault("upload_token", 0)
    st.session_state.setdefault("export_result", None)
    workspace: WorkspaceService = st.session_state.workspace
    return workspace


def _thumbnail_html(entry: PageEntry, selected: bool) -> str:
    border = "2px solid #4f46e5" if selected else "1px solid rgba(120,120,120,0.35)"
    if entry.thumbnail is None:
        body = (
            "<div style='height:180px;display:flex;align-items:center;"
            "justify-content:center;color:#888;font-size:0.8rem;'>Rendering…</div>"
        )
    else:
        encoded = base64.b64encode(entry.thumbnail.data).decode("ascii")
        body = (
            "<div style='display:flex;justify-content:center;'>"
            f"<img src='data:image/png;base64,{encoded}' "
            "style='max-width:100%;height:auto;border-radius:6px;'/>"
            "</div>"
        )
    return (
        f"<div style='border:{border};"
        " border-radius:10px;padding:8px;background:rgba(250,250,250,0.75);'>"
        "<div style='text-align:center;font-size:0.85rem;"
        f"font-weight:600;margin-bottom:6px;'>Page {entry.display_index}</div>"
        f"{body}"
        "<div style='text-align:center;font-size:0.75rem;color:#666;margin-top:4px;'>"
        f"{entry.source_label} · p{entry.origin_index + 1}</div>"
        "</div>"
    )


def _auto_thumbnail_columns(page_count: int) -> int:
    if page_count <= 1:
        return 1
    if page_count <= 4:
        return 2
    if page_count <= 9:
        return 3
    if page_count <= 16:
        return 4
    if page_count <= 25:
        return 5
    return 6


def _render_import_summary(result: BatchOperationResult) -> None:
    if not result.items:
        return
    metric_col_1, metric_col_2, metric_col_3 = st.columns(3)
    metric_col_1.metric("Added", result.success_count)
    metric_col_2.metric("Empty", result.warning_count)
    metric_col_3.metric("Failed", result.error_count)
    st.dataframe(
        [
            {
                "File": item.source_name,
                "Status": item.status.value.title(),
                "Details": " | ".join(message.text for message in item.messages),
            }
            for item in result.items
        ],
        use_container_width=True,
    )


def _render_last_message(workspace: WorkspaceService) -> None:
    message = workspace.last_message
    if message is None:
        return
    if message.level == "error":
        st.error(message.text)
    elif message.level == "warning":
        st.warning(message.text)
    else:
        st.success(message.text)
    workspace.acknowledge()


def _upload_section(workspace: WorkspaceService) -> None:
    config = workspace.config
    uploaded = st.file_uploader(
        (
            "Add one or more PDFs "
            f"(max {config.max_pdf_size_mb} MB each, "
            f"{config.max_batch_size_mb} MB total)"
        ),
        type=["pdf"],
        accept_multiple_files=True,
        key=f"organizer_upload_{st.session_state.upload_token}",
    )
    if st.button("Add Documents", type="primary", disabled=not uploaded):
        files = [(item.name, item.getvalue()) for item in uploaded] if uploaded else []
        with st.spinner("Opening documents…"):
            result = workspace.add_files(files)
        st.session_state.upload_token += 1
        st.session_state.export_result = None
        _render_import_summary(result.batch)


def _toolbar(workspace: WorkspaceService) -> None:
    collection = workspace.collection
    page_count = collection.page_count
    selected_count = len(collection.selection)

    st.caption(
        f"{page_count} pages · {collection.source_count} document(s)"
        + (f" · {selected_count} selected" if selected_count else "")
    )
    col_all, col_none, col_delete, col_reverse, col_clear = st.columns(5)
    with col_all:
        if st.button(
            "Select All",
            disabled=page_count == 0 or selected_count == page_count,
            use_container_width=True,
        ):
            workspace.select_all()
            st.rerun()
    with col_none:
        if st.button("Deselect", disabled=selected_count == 0, use_container_width=True):
            workspace.clear_selection()
            st.rerun()
    with col_delete:
        if st.button(
            "Delete Selected",
            disabled=selected_count == 0,
            use_container_width=True,
        ):
            workspace.delete_selected()
            st.session_state.export_result = None
            st.rerun()
    with col_reverse:
        if st.button("Reverse", disabled=page_count == 0, use_container_width=True):
            workspace.reverse()
            st.session_state.export_result = None
            st.rerun()
    with col_clear:
        if st.button("Clear All", disabled=page_count == 0, use_container_width=True):
            workspace.clear()
            st.session_state.export_result = None
            st.rerun()


def _page_grid(workspace: WorkspaceService) -> None:
    collection = workspace.collection
    if not collection.pipeline.wait(timeout=THUMBNAIL_WAIT_SECONDS):
        if st.button("Refresh thumbnails"):
            st.rerun()

    entries = collection.entries
    selection = collection.selection
    positions = list(range(1, len(entries) + 1))
    per_row = _auto_thumbnail_columns(len(entries))
    cols = st.columns(per_row, gap="small")
    for index, entry in enumerate(entries):
        with cols[index % per_row]:
            st.markdown(_thumbnail_html(entry, entry.id in selection), unsafe_allow_html=True)
            is_selected = entry.id in selection
            checked = st.checkbox(
                "Select", value=is_selected, key=f"sel_{entry.id}_{int(is_selected)}"
            )
            if checked != is_selected:
                workspace.toggle(entry.id)
                st.rerun()
            target = st.selectbox(
                "Move to",
                options=positions,
                index=entry.display_index - 1,
                key=f"move_{entry.id}_{entry.display_index}_{len(entries)}",
            )
            if target != entry.display_index:
                workspace.move(entry.id, entries[target - 1].id)
                st.session_state.export_result = None
                st.rerun()
            if st.button("Remove", key=f"remove_{entry.id}", use_container_width=True):
                workspace.remove_page(entry.id)
                st.session_state.export_result = None
                st.rerun()


def _export_section(workspace: WorkspaceService) -> None:
    if not workspace.collection.has_pages:
        st.button("Export PDF", disabled=True, use_container_width=True)
        return
    if st.button("Prepare Export", type="primary", use_container_width=True):
        with st.spinner("Assembling document…"):
            st.session_state.export_result = workspace.export()
    result = st.session_state.export_result
    if result is not None:
        st.download_button(
            "Download PDF",
            data=result.output_pdf,
            file_name=result.output_name,
            mime="application/pdf",
            use_container_width=True,
        )


def main() -> None:
    st.set_page_config(page_title="PDF Page Organizer", layout="wide")
    st.title("PDF Page Organizer", anchor=False)

    workspace = _init_workspace()

    _upload_section(workspace)
    _render_last_message(workspace)

    if not workspace.collection.has_pages:
        st.info("No PDFs loaded yet.")
        return

    _toolbar(workspace)
    st.divider()
    _page_grid(workspace)
    st.divider()
    _export_section(workspace)


if __name__ == "__main__":
    main()
