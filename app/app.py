"""
UI layer
Purpose: Streamlit-only glue. Renders the connect form, the key/value form,
the result and the operation history, and delegates all work to the
controller. Keeps UI concerns (layout/widget state) separate from the storage
core so the core can be unit tested without Streamlit.

Every browser tab is one storage context on a shared origin: a SET in one tab
shows up in the other tabs bound to the same server address.
"""

import json

import streamlit as st

from core.config import AppConfig, load_app_config
from core.controller import KVSessionController
from core.logging_setup import configure_logging
from core.models import HistoryEntry, Operation
from core.persistence.local_storage import StorageOrigin, build_storage_origin


# ---------------------------
# Page config
# ---------------------------
st.set_page_config(
    page_title="KV Store Web",
    page_icon="🗄️",
    layout="centered",
)

# ---------------------------
# UI constants
# ---------------------------
OPERATION_COLORS = {
    Operation.SET: "blue",
    Operation.GET: "green",
    Operation.DELETE: "orange",
}


# ---------------------------
# Shared resources
# ---------------------------
@st.cache_resource
def get_config() -> AppConfig:
    config = load_app_config()
    configure_logging(config.logging)
    return config


@st.cache_resource
def get_storage_origin(directory) -> StorageOrigin:
    """One origin per process; every tab opens its own context on it."""
    return build_storage_origin(directory, asynchronous=True)


config = get_config()
origin = get_storage_origin(config.storage.directory)

# ---------------------------
# Session state init
# ---------------------------
st_session = st.session_state
if st_session.get("controller") is None:
    st_session.controller = KVSessionController(
        origin.open_context(),
        prefix=config.storage.prefix,
        history_limit=config.history_limit,
    )
st_session.setdefault("server_address", config.defaults.server_address)
st_session.setdefault("transport_port", config.defaults.transport_port)
st_session.setdefault("secondary_port", config.defaults.secondary_port)
st_session.setdefault("kv_key", "")
st_session.setdefault("kv_value", "")
st_session.setdefault("kv_command", "")
st_session.setdefault("rendered_version", -1)


# ---------------------------
# Helpers
# ---------------------------
def get_controller() -> KVSessionController:
    """Return the controller object."""
    return st_session.controller


def get_ready_controller():
    """Return controller only if a session is connected."""
    controller = get_controller()
    return controller if controller.is_ready() else None


def on_connect():
    """Open a session with the values from the connect form."""
    get_controller().connect(
        st_session.server_address,
        st_session.transport_port,
        st_session.secondary_port,
    )


def on_disconnect():
    """Close the session and clear the form."""
    get_controller().disconnect()
    st_session.kv_key = ""
    st_session.kv_value = ""
    st_session.kv_command = ""


def on_set():
    if controller := get_ready_controller():
        controller.set(st_session.kv_key, st_session.kv_value)


def on_get():
    if controller := get_ready_controller():
        controller.get(st_session.kv_key)


def on_delete():
    if controller := get_ready_controller():
        controller.delete(st_session.kv_key)


def on_command():
    line = (st_session.kv_command or "").strip()
    if not line:
        return
    if controller := get_ready_controller():
        controller.run_command(line)
    st_session.kv_command = ""


def render_history_entry(entry: HistoryEntry) -> None:
    """One history card: time and operation, key/value, result."""
    with st.container(border=True):
        color = OPERATION_COLORS.get(entry.operation, "gray")
        st.markdown(f"**{entry.timestamp}** - :{color}[**{entry.operation.value}**]")
        details = f"Key: {entry.key}"
        if entry.value is not None:
            details += f", Value: {entry.value}"
        st.text(details)
        if entry.is_error:
            st.error(entry.result)
        else:
            st.caption(entry.result)


def history_json(entries: list[HistoryEntry]) -> str:
    return json.dumps([e.to_dict() for e in entries], ensure_ascii=False, indent=2)


@st.fragment(run_every=config.sync_refresh_seconds)
def watch_external_changes():
    """Rerun the page when another tab changed the bound namespace."""
    controller = get_ready_controller()
    if controller and controller.store_version != st_session.rendered_version:
        st.rerun()


# ---------------------------
# Connect screen
# ---------------------------
controller = get_ready_controller()
if controller is None:
    st.title("RDMA KV Store")
    with st.form("connect_form"):
        st.text_input(
            "Server Address",
            key="server_address",
            placeholder="Enter server IP:port",
        )
        c1, c2 = st.columns([1, 1])
        c1.text_input("Transport port", key="transport_port")
        c2.text_input("Secondary port", key="secondary_port")
        st.form_submit_button(
            "Connect", type="primary", use_container_width=True, on_click=on_connect
        )
    st.stop()

# ---------------------------
# Header
# ---------------------------
hcol1, hcol2 = st.columns([3, 1])
with hcol1:
    st.title("KV Store Web")
    st.caption(f"Connected to: **{controller.session.server_address}**")
with hcol2:
    st.button("Disconnect", type="primary", on_click=on_disconnect)

# ---------------------------
# Operations
# ---------------------------
st.text_input("Key", key="kv_key", placeholder="Key")
st.text_input("Value", key="kv_value", placeholder="Value (for set operation)")

b1, b2, b3 = st.columns(3)
b1.button("Set Value", use_container_width=True, on_click=on_set)
b2.button("Get Value", use_container_width=True, on_click=on_get)
b3.button("Delete Value", use_container_width=True, on_click=on_delete)

st.text_input(
    "Command",
    key="kv_command",
    placeholder='set <key> <value> | get <key> | delete <key>',
    on_change=on_command,
)

st.markdown("**Result:**")
st.code(controller.last_result or " ", language=None)

# ---------------------------
# History
# ---------------------------
st.markdown("**Operation History:**")
history = controller.get_history()
with st.container(height=400):
    if not history:
        st.caption("No operations yet")
    for entry in history:
        render_history_entry(entry)

if history:
    st.download_button(
        "Download history (JSON)",
        data=history_json(history),
        file_name="kv_history.json",
        mime="application/json",
    )

with st.expander(f"Stored records ({controller.namespace})"):
    records = controller.records()
    if records:
        st.dataframe(
            [{"key": k, "value": v} for k, v in sorted(records.items())],
            use_container_width=True,
            hide_index=True,
        )
    else:
        st.caption("No records in this namespace")
    known = controller.known_namespaces()
    if known:
        st.caption("Addresses with stored data: " + ", ".join(known))

st_session.rendered_version = controller.store_version
watch_external_changes()
