"""Streamlit live editor for Material Studio."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st
import streamlit.components.v1 as components

from hierarchy import (
    ConfirmationRequired,
    DuplicateNodeError,
    HierarchyError,
    HierarchySession,
    HierarchyTree,
    build_list_template,
    build_tree_from_mapping,
    default_mapping,
    list_template_tree,
)
from hierarchy.list_template import sections_from_tree
from hierarchy.mapping import IGNORE, HierarchyMapping
from hierarchy.render import paginate_sections, render_hierarchy_html, render_list_html
from materialstudio import (
    AppConfig,
    MappingStore,
    WorkbookCache,
    build_hierarchy_pdf,
    build_list_pdf,
    load_config,
)
from materialstudio.config import DEFAULT_CONFIG_PATH
from materialstudio.storage import mapping_key

logger = logging.getLogger(__name__)

st.set_page_config(page_title="Material Studio", layout="wide")

CONFIG: AppConfig = load_config(DEFAULT_CONFIG_PATH) if DEFAULT_CONFIG_PATH.exists() else AppConfig()
TOP_LEVEL = "(bovenste niveau)"


def _cache() -> WorkbookCache:
    if "workbooks" not in st.session_state:
        st.session_state["workbooks"] = WorkbookCache()
    return st.session_state["workbooks"]


def _store() -> MappingStore:
    if "mapping_store" not in st.session_state:
        st.session_state["mapping_store"] = MappingStore(CONFIG.storage.mapping_path)
    return st.session_state["mapping_store"]


def _session(file_id: str, sheet_id: int) -> HierarchySession:
    sessions: Dict[str, HierarchySession] = st.session_state.setdefault("sessions", {})
    key = mapping_key(file_id, sheet_id)
    if key not in sessions:
        sessions[key] = HierarchySession.from_settings(
            _cache().sheet(file_id, sheet_id),
            strict_labels=CONFIG.hierarchy.strict_labels,
            label_columns=CONFIG.hierarchy.label_columns,
            max_clone_depth=CONFIG.hierarchy.max_clone_depth,
            file_id=file_id,
        )
    return sessions[key]


def _node_label(tree: HierarchyTree, node_id: str) -> str:
    node = tree.get(node_id)
    indent = " " * max(node.level, 0)
    text = node.value or node.column_name or "(leeg)"
    role = ""
    if node.is_template:
        role = " [template]"
    elif node.is_duplicate:
        role = " [duplicaat]"
    return f"{indent}{text}{role}"


def _run_edit(action, *args, **kwargs) -> None:
    try:
        action(*args, **kwargs)
    except DuplicateNodeError:
        st.warning("Duplicaten volgen hun template en kunnen niet los bewerkt worden.")
        return
    except ConfirmationRequired as exc:
        st.session_state["pending_delete"] = exc.node_id
        st.session_state["pending_message"] = str(exc)
        st.rerun()
    except (HierarchyError, KeyError) as exc:
        st.error(str(exc))
        return
    st.rerun()


def _mapping_editor(headers: List[str], current: HierarchyMapping) -> HierarchyMapping:
    options = [TOP_LEVEL, IGNORE] + [f"{index}: {header}" for index, header in enumerate(headers)]
    mapping: HierarchyMapping = {}
    for index, header in enumerate(headers):
        parent = current.get(index, IGNORE)
        if parent is None:
            default = TOP_LEVEL
        elif parent == IGNORE:
            default = IGNORE
        else:
            default = f"{parent}: {headers[parent]}" if 0 <= int(parent) < len(headers) else TOP_LEVEL
        choice = st.selectbox(
            f"Ouder van '{header}'",
            options,
            index=options.index(default),
            key=f"mapping-{index}",
        )
        if choice == TOP_LEVEL:
            mapping[index] = None
        elif choice == IGNORE:
            mapping[index] = IGNORE
        else:
            mapping[index] = int(choice.split(":", 1)[0])
    return mapping


def _hierarchy_editor(session: HierarchySession, file_name: str) -> None:
    sheet = session.sheet
    tree = session.tree
    headers = [sheet.column_label(index) for index in range(sheet.column_count)]

    with st.expander("Kolomstructuur"):
        stored = _store().get(session.file_id, sheet.sheet_id)
        mapping = _mapping_editor(headers, stored if stored is not None else default_mapping(sheet.headers))
        left, middle, right = st.columns(3)
        if left.button("Boom opbouwen"):
            try:
                session.replace_tree(build_tree_from_mapping(sheet, mapping, CONFIG.hierarchy.label_columns))
            except ValueError as exc:
                st.error(str(exc))
            else:
                st.rerun()
        if middle.button("Structuur opslaan"):
            if _store().save(session.file_id, sheet.sheet_id, mapping):
                st.success("Structuur opgeslagen")
            else:
                st.error(f"Opslaan mislukt: {_store().last_error}")
        if right.button("Leeg beginnen"):
            session.reset()
            st.rerun()

    node_ids = [node.id for node in tree.walk()]
    if not node_ids:
        st.info("De boom is leeg.")
        return
    selected = st.selectbox(
        "Knooppunt",
        node_ids,
        format_func=lambda node_id: _node_label(tree, node_id),
        key="selected-node",
    )
    node = tree.get(selected)

    pending = st.session_state.get("pending_delete")
    if pending and tree.find(pending) is not None:
        st.warning(st.session_state.get("pending_message", "Verwijderen bevestigen?"))
        confirm, cancel = st.columns(2)
        if confirm.button("Ja, verwijderen"):
            st.session_state.pop("pending_delete", None)
            _run_edit(session.delete_node, pending, confirmed=True)
        if cancel.button("Annuleren"):
            st.session_state.pop("pending_delete", None)
            st.rerun()

    used = set(tree.used_columns(node))
    free_columns = [index for index in range(sheet.column_count) if index not in used]
    column = st.selectbox(
        "Kolom",
        free_columns,
        format_func=lambda index: headers[index],
        key="selected-column",
    )

    first, second, third, fourth = st.columns(4)
    if first.button("Kolom toewijzen", disabled=column is None):
        _run_edit(session.assign_column, node.id, column)
    if second.button("Eerste waarde", disabled=column is None):
        _run_edit(session.assign_specific_value, node.id, column)
    if third.button("Kind toevoegen"):
        _run_edit(session.add_child, node.id)
    if fourth.button("Broer toevoegen"):
        _run_edit(session.add_sibling, node.id)

    first, second, third = st.columns(3)
    if first.button("Broer met kolom", disabled=column is None):
        _run_edit(session.add_sibling_with_column, node.id, column)
    layout_label = "Verticaal" if node.layout_mode.value == "horizontal" else "Horizontaal"
    if second.button(f"Layout: {layout_label}"):
        _run_edit(session.toggle_layout, node.id)
    if third.button("Verwijderen"):
        _run_edit(session.delete_node, node.id)

    columns = st.multiselect(
        "Kinderen per kolom",
        free_columns,
        format_func=lambda index: headers[index],
        key="multi-columns",
    )
    if st.button("Kolomkinderen toevoegen", disabled=not columns):
        _run_edit(session.add_column_children, node.id, columns)

    st.subheader("Voorbeeld")
    show_empty = st.checkbox("Lege cellen tonen", value=False)
    export_root = st.checkbox("Alleen geselecteerd knooppunt exporteren", value=False)
    nodes = [node] if export_root else tree.root.children
    layout = CONFIG.page_layout()
    preview = render_hierarchy_html(
        nodes,
        show_empty_cells=show_empty,
        title=CONFIG.output.title,
        subtitle=sheet.name,
        layout=layout,
        accent=CONFIG.style.accent_color,
        zebra=CONFIG.style.zebra_color,
    )
    components.html(preview, height=800, scrolling=True)
    pdf_bytes = build_hierarchy_pdf(
        nodes,
        CONFIG.style,
        layout,
        title=CONFIG.output.title,
        subtitle=sheet.name,
        show_empty_cells=show_empty,
    )
    st.download_button(
        "PDF downloaden",
        data=pdf_bytes,
        file_name=f"{Path(file_name).stem}_{sheet.name}.pdf",
        mime="application/pdf",
    )


def _list_view(session: HierarchySession, file_name: str) -> None:
    sheet = session.sheet
    tree = list_template_tree(build_list_template(sheet))
    sections = sections_from_tree(tree)
    courses = [section.name for section in sections if section.name]
    course: Optional[str] = None
    if courses:
        choice = st.selectbox("Course", ["Alle courses"] + courses)
        course = None if choice == "Alle courses" else choice
        sections = sections_from_tree(tree, course)

    layout = CONFIG.page_layout()
    with st.spinner("Pagina's opmeten..."):
        pages = paginate_sections(
            sections,
            sheet.name,
            layout=layout,
            single_course_budget=CONFIG.page.single_course_budget_px,
            multi_course_budget=CONFIG.page.multi_course_budget_px,
            title_height=CONFIG.page.title_height_px,
            title=CONFIG.output.title,
        )
    if not pages:
        st.info("Geen materialen gevonden op dit blad.")
        return

    st.dataframe(
        pd.DataFrame(
            [{"pagina": page.number, "course": page.course or "-", "rijen": len(page.rows)} for page in pages]
        )
    )
    preview = render_list_html(
        pages,
        layout=layout,
        accent=CONFIG.style.accent_color,
        zebra=CONFIG.style.zebra_color,
        title=CONFIG.output.title,
    )
    components.html(preview, height=1000, scrolling=True)
    st.download_button(
        "PDF downloaden",
        data=build_list_pdf(pages, CONFIG.style, layout, title=CONFIG.output.title),
        file_name=f"{Path(file_name).stem}_{course or sheet.name}.pdf",
        mime="application/pdf",
    )


st.title("Material Studio")
st.write("Bouw een hiërarchie over de kolommen van een werkboek en exporteer een materialenlijst.")

with st.sidebar:
    st.header("Werkboek")
    uploaded = st.file_uploader("Upload een Excel-bestand", type=["xlsx", "xlsm"])
    if st.button("Werkboek laden"):
        if uploaded is None:
            st.warning("Kies eerst een bestand.")
        else:
            with st.spinner("Werkboek inlezen..."):
                try:
                    workbook = _cache().load(uploaded, name=uploaded.name)
                except (OSError, ValueError) as exc:
                    st.error(f"Kon het werkboek niet lezen: {exc}")
                else:
                    st.session_state["file_id"] = workbook.file_id
                    st.success(f"{len(workbook.sheets)} blad(en) geladen")

file_id = st.session_state.get("file_id")
if file_id is None or file_id not in _cache():
    st.info("Laad een werkboek via het panel links.")
    st.stop()

workbook = _cache().get(file_id)
if not workbook.sheets:
    st.warning("Dit werkboek bevat geen zichtbare bladen met gegevens.")
    st.stop()

sheet_id = st.sidebar.selectbox(
    "Blad",
    list(workbook.sheets),
    format_func=lambda key: workbook.sheets[key].name,
)
mode = st.sidebar.radio("Modus", ["Hiërarchie", "Lijst"], index=0)
session = _session(file_id, sheet_id)

if mode == "Hiërarchie":
    _hierarchy_editor(session, workbook.name)
else:
    _list_view(session, workbook.name)
