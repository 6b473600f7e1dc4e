import streamlit as st
import pandas as pd

from domain.models import LineItem
from services.order_ledger import OrderLedger
from services.table_store import Workbook
from utils.formatting import format_currency


@st.dialog("Konfirmasi")
def confirmation_dialog_submit_order(workbook: Workbook, sheet_name: str, name: str, items: list[LineItem],
                                     state_name: str):
    df = pd.DataFrame(
        [
            {"Item": item.name, "Jumlah": item.quantity, "Harga": format_currency(item.unit_price)}
            for item in items
        ]
    )
    st.write(f"Sheet: **{sheet_name}** | Nama: **{name}**")
    st.dataframe(df, hide_index=True)

    col_yes, col_no = st.columns(2)

    with col_yes:
        if st.button("Ya", type="primary", key="confirm_yes"):
            status, msg = OrderLedger().submit_order(workbook, sheet_name, name, items)
            st.session_state[state_name] = msg if status else False

            if not status:
                st.error(msg)
            else:
                st.rerun()
    with col_no:
        if st.button("Tidak"):
            st.rerun()
