from __future__ import annotations

import streamlit as st

from academy.config import get_settings
from academy.logging_setup import configure_logging

st.set_page_config(page_title="Academy Hub", page_icon="🎓", layout="wide")

configure_logging(level=get_settings().log_level)

pages = [
    st.Page("home.py", title="Dashboard", icon="🏠"),
    st.Page("pages/1_🎓_Enrollments.py", title="Enrollments", icon="🎓"),
    st.Page("pages/2_📞_Enquiries.py", title="Enquiries", icon="📞"),
    st.Page("pages/3_🛒_Sales.py", title="Sales", icon="🛒"),
    st.Page("pages/4_📦_Inventory.py", title="Materials & Inventory", icon="📦"),
    st.Page("pages/5_💰_Income_&_Expenses.py", title="Income & Expenses", icon="💰"),
    st.Page("pages/6_📊_Reports.py", title="Reports", icon="📊"),
    st.Page("pages/7_⚙️_Settings.py", title="Settings", icon="⚙️"),
]

st.navigation(pages).run()
