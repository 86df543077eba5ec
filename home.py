from __future__ import annotations

import pandas as pd
import streamlit as st

from academy.config import get_settings
from academy.db import get_store
from academy.services.aggregation import dashboard_counts, new_entities_this_month, time_series, totals

st.set_page_config(page_title="Academy Hub", page_icon="🎓", layout="wide")

settings = get_settings()
store = get_store(settings.db_path)

st.title("🎓 Academy Hub — Dashboard")
st.caption("Students, enquiries, course fees, material sales and the income/expense ledger.")

with st.sidebar:
    st.subheader("Environment")
    st.write(f"**Data directory:** `{settings.data_dir}`")
    st.write(f"**Database:** `{settings.db_path.name}`")

students = store.feed("students").snapshot()
courses = store.feed("courses").snapshot()
enquiries = store.feed("enquiries").snapshot()
transactions = store.feed("transactions").snapshot()

counts = dashboard_counts(students, courses, enquiries)
t = totals(transactions)

c1, c2, c3, c4 = st.columns(4)
c1.metric("Students", f"{counts['students']}", f"+{new_entities_this_month(students, 'enrollmentDate')} this month")
c2.metric("Courses", f"{counts['courses']}")
c3.metric("Pending enquiries", f"{counts['pending_enquiries']}")
c4.metric("Net balance", f"{settings.currency} {t.net:,.2f}")

c5, c6 = st.columns(2)
c5.metric("Total income", f"{settings.currency} {t.income:,.2f}")
c6.metric("Total expenses", f"{settings.currency} {t.expenses:,.2f}")

st.subheader("Income vs expenses — last 7 days")
series = pd.DataFrame(time_series(transactions, "last_7_days"))
series["date"] = pd.to_datetime(series["date"])
st.bar_chart(series.set_index("date")[["income", "expense"]])

st.caption("Figures follow the latest snapshot; a write made a moment ago may take one refresh to show.")
