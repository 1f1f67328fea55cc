#!/usr/bin/env python3
"""Streamlit control panel: VRChat login and the feed toggles.

Run with ``streamlit run src/vrc_world_opener/panel.py``. A running
``vrc-world-opener watch`` picks toggle changes up from the settings file.
"""

import streamlit as st

from vrc_world_opener.core.config import ConfigManager
from vrc_world_opener.core.storage.settings_store import SettingsStore
from vrc_world_opener.vrchat_api.client import VRChatClient


@st.cache_resource
def load_config() -> ConfigManager:
    return ConfigManager().load_all()


def get_store(cfg: ConfigManager) -> SettingsStore:
    return SettingsStore(cfg.settings_path)


def get_client(cfg: ConfigManager, store: SettingsStore) -> VRChatClient:
    client = st.session_state.get("client")
    if client is None:
        client = VRChatClient(cfg.api, store=store)
        st.session_state.client = client
    return client


def render_login(client: VRChatClient) -> None:
    pending = st.session_state.get("two_factor_types")
    if pending:
        code = st.text_input("Two-factor code", key="twofa_code")
        col_ok, col_cancel = st.columns(2)
        if col_ok.button("Verify"):
            result = client.verify_2fa(code, pending)
            if result.success:
                st.session_state.two_factor_types = None
                st.rerun()
            st.error(result.error or "Two-factor verification failed")
        if col_cancel.button("Cancel"):
            st.session_state.two_factor_types = None
            st.rerun()
        return

    username = st.text_input("VRChat username")
    password = st.text_input("Password", type="password")
    if st.button("Log in"):
        result = client.login(username, password)
        if result.requires_2fa:
            st.session_state.two_factor_types = result.two_factor_types
            st.rerun()
        elif result.success:
            st.rerun()
        else:
            st.error(result.error or "Login failed")


def render_toggles(store: SettingsStore) -> None:
    current = store.read_settings()
    enabled = st.toggle("Enable world detection", value=current.enabled)
    show_open = st.toggle("Show 'open world' button", value=current.show_open_control)
    show_search = st.toggle("Show 'search by name' button", value=current.show_search_control)
    changes = {
        "enabled": enabled,
        "show_open_control": show_open,
        "show_search_control": show_search,
    }
    if any(getattr(current, key) != value for key, value in changes.items()):
        store.update_settings(**changes)
        st.toast("Settings saved")


def main() -> None:
    st.set_page_config(page_title="VRC World Opener", layout="centered")
    st.title("VRC World Opener")

    cfg = load_config()
    store = get_store(cfg)
    client = get_client(cfg, store)

    with st.spinner("Checking VRChat login..."):
        status = client.check_authentication()

    if status.authenticated:
        name = (status.user or {}).get("displayName") or store.display_name or "unknown"
        st.success(f"Logged in as {name}")
        if st.button("Log out"):
            client.logout()
            st.rerun()
    else:
        render_login(client)

    st.divider()
    render_toggles(store)


if __name__ == "__main__":
    main()
