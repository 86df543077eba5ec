from __future__ import annotations

import logging

import streamlit as st

from academy.errors import ValidationError
from academy.services.ledger import LedgerOutcome

logger = logging.getLogger(__name__)


def show_error(e: Exception) -> None:
    if isinstance(e, ValidationError):
        for field, message in e.errors.items():
            st.error(f"**{field}**: {message}")
        return
    logger.error("Action failed: %s", e, exc_info=e)
    st.error(str(e) or type(e).__name__)


def show_outcome(outcome: LedgerOutcome, success: str) -> None:
    if outcome.partial:
        st.warning(outcome.warning, icon="⚠️")
    else:
        st.success(success)
