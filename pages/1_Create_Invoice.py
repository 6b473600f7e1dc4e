import streamlit as st
import pandas as pd

from app_context import configure_logging, get_config, get_invoice_service, get_order_ledger, get_workbook
from domain.models import LineItem
from services.invoice_service import InvoiceRequest
from services.order_ledger import list_sheets
from utils.formatting import format_currency

configure_logging()

st.set_page_config(page_title="Create Invoice", page_icon="🧾")
st.title("🧾 Create Invoice")

config = get_config()
workbook = get_workbook(config)
ledger = get_order_ledger()

# -----------------------------------------------------------------------------
# 1) Pick sheet + customer
# -----------------------------------------------------------------------------
sheet_name = st.selectbox(
    "Sheet",
    options=list_sheets(workbook, config.invoice_excluded_sheets, sort=True),
)
if not sheet_name:
    st.warning("Tidak ada sheet yang tersedia.")
    st.stop()

table = workbook.sheet(sheet_name)
customers = ledger.customer_names(table)
if not customers:
    st.warning("Belum ada customer di sheet ini.")
    st.stop()

customer_name = st.selectbox("Customer", options=customers)
items = ledger.customer_items(table, customer_name)

st.divider()

# -----------------------------------------------------------------------------
# 2) Pick items
# -----------------------------------------------------------------------------
df_items = pd.DataFrame(
    [
        {"Pilih": True, "Item": item.name, "Jumlah": item.quantity, "Harga": item.unit_price}
        for item in items
    ]
)

if df_items.empty:
    st.warning("Customer ini belum punya item.")
    st.stop()

edited = st.data_editor(
    df_items,
    hide_index=True,
    disabled=["Item", "Jumlah", "Harga"],
    width='stretch',
)

selected_items = [
    LineItem(row["Item"], row["Jumlah"], row["Harga"])
    for _, row in edited.iterrows()
    if row["Pilih"]
]

col_phone, col_discount, col_shipping = st.columns([2, 1, 1])
with col_phone:
    phone_number = st.text_input("No. HP", placeholder="08xxxxxxxxxx")
with col_discount:
    discount = st.number_input("Diskon", min_value=0, step=1000, value=0)
with col_shipping:
    shipping = st.number_input("Ongkir", min_value=0, step=1000, value=0)

subtotal = sum(item.line_total for item in selected_items)
st.metric("Total", format_currency(subtotal - discount + shipping))

# -----------------------------------------------------------------------------
# 3) Generate
# -----------------------------------------------------------------------------
if st.button("Generate Invoice", type="primary"):
    if not selected_items:
        st.error("Pilih minimal satu item.")
        st.stop()

    with st.spinner("Membuat invoice..."):
        ok, msg, outcome = get_invoice_service(config).generate_invoice(
            InvoiceRequest(
                customer_name=customer_name,
                phone_number=phone_number,
                items=selected_items,
                discount=discount,
                shipping=shipping,
            )
        )

    if not ok:
        st.error(msg)
    else:
        st.success(msg)
        st.markdown(f"[Lihat invoice]({outcome.file_url})")
        if outcome.payment_url:
            st.markdown(f"[Link pembayaran]({outcome.payment_url})")
        else:
            st.info(f"Link pembayaran tidak tersedia: {outcome.payment.error_message}")
        if not outcome.notified:
            st.warning(f"Notifikasi gagal dikirim: {outcome.notification_message}")
