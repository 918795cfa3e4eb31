"""Styling helpers for Streamlit layouts."""
from __future__ import annotations

import streamlit as st

from app_constants import TRANSITION_DELAY_SECONDS

_BASE_CSS = """
<style>
.stApp {
    background: radial-gradient(circle at 50% 110%, #5a2a0c 0%, #1d140d 55%, #120c08 100%);
    color: #f5e6cc;
}
[data-testid="stHeader"] {
    background: rgba(0, 0, 0, 0);
}
[data-testid="stMainBlockContainer"] {
    max-width: 820px;
}
.campfire-title {
    font-family: Georgia, 'Times New Roman', serif;
    text-align: center;
    margin-bottom: 0.25rem;
}
.campfire-page-text p {
    font-family: Georgia, 'Times New Roman', serif;
    font-size: 1.1rem;
    line-height: 1.7;
}
.campfire-prompt {
    font-style: italic;
    color: #f2b25c;
    text-align: center;
}
.campfire-badge {
    display: inline-block;
    padding: 0.1rem 0.6rem;
    border-radius: 999px;
    background: #2f6f3e;
    color: #ffffff;
    font-size: 0.8rem;
}
@keyframes campfire-fade-in {
    from { opacity: 0; transform: translateY(8px); }
    to { opacity: 1; transform: translateY(0); }
}
</style>
"""


def render_app_styles(*, animating_out: bool = False) -> None:
    """Apply global styling and the enter/exit fade for the current view."""

    seconds = TRANSITION_DELAY_SECONDS
    if animating_out:
        motion = (
            "[data-testid=\"stMainBlockContainer\"] {"
            f" opacity: 0; transition: opacity {seconds:.2f}s ease-in; pointer-events: none; }}"
        )
    else:
        motion = (
            "[data-testid=\"stMainBlockContainer\"] {"
            f" animation: campfire-fade-in {seconds:.2f}s ease-out; }}"
        )
    st.markdown(_BASE_CSS + f"<style>{motion}</style>", unsafe_allow_html=True)


__all__ = ["render_app_styles"]
