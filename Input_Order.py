import streamlit as st

from app_context import configure_logging, get_config, get_order_ledger, get_workbook
from domain.errors import ValidationError
from domain.models import LineItem
from element_component import confirmation_dialog_submit_order
from services.order_ledger import list_sheets

configure_logging()

st.set_page_config(
    page_title="Input Order",
    page_icon="📝"
)

st.sidebar.header("📝 Input Order")

config = get_config()
workbook = get_workbook(config)
ledger = get_order_ledger()

if 'order_input_state' not in st.session_state:
    st.session_state['order_input_state'] = False

if 'num_order_items' not in st.session_state:
    st.session_state.num_order_items = 1

# -----------------------------------------------------------------------------
# 1) Sheet + customer
# -----------------------------------------------------------------------------
sheet_name = st.selectbox("Sheet", options=list_sheets(workbook, config.order_input_excluded_sheets))
if not sheet_name:
    st.warning("Tidak ada sheet yang tersedia.")
    st.stop()

existing_names = ledger.customer_names(workbook.sheet(sheet_name))
NEW_CUSTOMER = "➕ Nama baru"

choice = st.selectbox("Nama", options=[NEW_CUSTOMER] + existing_names)
if choice == NEW_CUSTOMER:
    customer_name = st.text_input("Nama baru").strip()
else:
    customer_name = choice

st.divider()

# -----------------------------------------------------------------------------
# 2) Items
# -----------------------------------------------------------------------------
if st.button("➕ Tambah Item"):
    st.session_state.num_order_items += 1

for i in range(st.session_state.num_order_items):
    col_item, col_qty, col_price = st.columns([2, 1, 1.5])
    with col_item:
        st.text_input("Item", key=f"order_item_{i}")
    with col_qty:
        st.number_input("Jumlah", min_value=0, step=1, value=1, key=f"order_qty_{i}")
    with col_price:
        st.number_input("Harga", min_value=0, step=1000, value=0, key=f"order_price_{i}")

# -----------------------------------------------------------------------------
# 3) Submit
# -----------------------------------------------------------------------------
if st.button("Submit", type="primary"):
    st.session_state['order_input_state'] = False
    items = []
    try:
        for i in range(st.session_state.num_order_items):
            item_name = (st.session_state.get(f"order_item_{i}") or "").strip()
            if not item_name:
                continue
            items.append(
                LineItem(
                    item_name,
                    st.session_state.get(f"order_qty_{i}", 0),
                    st.session_state.get(f"order_price_{i}", 0),
                )
            )
    except ValidationError as e:
        st.error(str(e))
        st.stop()

    if not customer_name:
        st.error("Nama tidak boleh kosong")
    elif not items:
        st.error("Item tidak boleh kosong")
    else:
        confirmation_dialog_submit_order(workbook, sheet_name, customer_name, items, "order_input_state")

if st.session_state['order_input_state']:
    st.success(st.session_state['order_input_state'])
