import streamlit as st
import pandas as pd
import os
import base64
from datetime import date

import config
from metrics import (
    compute_dashboard_totals, compute_farmer_balances, compute_pending_dues, format_currency,
    format_number, get_top_performing_farmers, summarize_collections
)
from models import MILK_SHIFTS, PAYMENT_METHODS
from procurement import (
    ProcurementBook, ValidationError, build_collection_entry, build_farmer, build_payment_record,
    farmer_label, farmer_name, filter_balances, filter_collections, filter_farmers, resolve_farmer, UNKNOWN_FARMER
)
from report_generator import DairyReportGenerator
from storage import LocalStorage

config.configure_logging()

# Set page title and favicon
st.set_page_config(
    page_title=config.APP_TITLE,
    page_icon="🥛",
    layout="wide"
)

TABS = [
    ("Dashboard", "Overview of daily procurement, quality metrics and payouts."),
    ("Farmers", "Maintain producer directory, contracted rates and contact details."),
    ("Collections", "Record shift-wise milk procurement and monitor quality trends."),
    ("Payments", "Track settlements, outstanding balances and share transparency."),
]


# Initialize storage
@st.cache_resource
def get_storage():
    return LocalStorage(config.STORAGE_PATH)


# Initialize report generator
@st.cache_resource
def get_report_generator():
    return DairyReportGenerator()


report_gen = get_report_generator()


def get_book() -> ProcurementBook:
    """One ledger per browser session, hydrated from local storage on first use."""
    if "book" not in st.session_state:
        st.session_state.book = ProcurementBook(get_storage())
    return st.session_state.book


def get_selected_date() -> date:
    if "selected_date" not in st.session_state:
        st.session_state.selected_date = date.today()
    return st.session_state.selected_date


def get_download_link(file_path, link_text):
    """Generate a download link for a file."""
    with open(file_path, "rb") as f:
        data = f.read()
    b64 = base64.b64encode(data).decode()
    href = f'<a href="data:application/octet-stream;base64,{b64}" download="{os.path.basename(file_path)}">{link_text}</a>'
    return href


def farmer_option_label(farmers, farmer_id):
    farmer = resolve_farmer(farmers, farmer_id)
    return f"{farmer.name} · {farmer.village}" if farmer else UNKNOWN_FARMER


# Main app structure
def main():
    book = get_book()

    header_col, reset_col = st.columns([4, 1])
    with header_col:
        st.title(config.APP_TITLE)
        st.caption(config.APP_TAGLINE)
    with reset_col:
        if st.button("Reset Demo Data", key="reset_demo_data"):
            book.reset_all()
            st.success("Demo data restored.")

    if not book.is_hydrated:
        st.info("Loading procurement records from secure storage...")
        book.hydrate()
        st.rerun()

    tabs = st.tabs([label for label, _ in TABS])
    for tab, (label, description) in zip(tabs, TABS):
        with tab:
            st.caption(description)
            if label == "Dashboard":
                show_dashboard(book)
            elif label == "Farmers":
                show_farmers_page(book)
            elif label == "Collections":
                show_collections_page(book)
            elif label == "Payments":
                show_payments_page(book)


# Dashboard page
def show_dashboard(book: ProcurementBook):
    selected_date = get_selected_date()
    totals = compute_dashboard_totals(book.farmers, book.collections, book.payments, selected_date)
    top_farmers = get_top_performing_farmers(book.farmers, book.collections, config.TOP_PERFORMERS_LIMIT)

    st.header("Daily Procurement Snapshot")
    st.write(f"Summary for **{selected_date.strftime('%d-%m-%Y')}**. Keep an eye on collection volumes, cash flow and quality parameters.")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Total Farmers", totals.total_farmers)
        st.caption(f"Active: {totals.active_farmers}")
    with col2:
        st.metric("Milk Collected Today", f"{format_number(totals.daily.total_liters)} L")
        st.caption(format_currency(totals.daily.total_amount))
    with col3:
        st.metric("Quality Averages", f"{totals.daily.average_fat}% Fat")
        st.caption(f"SNF {totals.daily.average_snf}%")
    with col4:
        st.metric("Financial Health", format_currency(totals.total_outstanding))
        st.caption(f"Paid {format_currency(totals.total_paid)}")

    st.subheader("Shift Breakdown")
    shift_col1, shift_col2, shift_col3 = st.columns(3)
    with shift_col1:
        st.metric("Morning Shift", f"{format_number(totals.daily.shift_breakdown['Morning'])} L")
    with shift_col2:
        st.metric("Evening Shift", f"{format_number(totals.daily.shift_breakdown['Evening'])} L")
    with shift_col3:
        st.metric("Overall Volume", f"{format_number(totals.overall_liters)} L")

    st.subheader("Top Supplying Farmers")
    if top_farmers:
        top_df = pd.DataFrame([
            {
                "Farmer": f"{row.farmer.name} ({farmer_label(row.farmer)})",
                "Village": row.farmer.village,
                "Volume": f"{format_number(row.total_liters)} L",
                "Total Value": format_currency(row.total_amount)
            }
            for row in top_farmers
        ])
        st.dataframe(top_df, hide_index=True)
    else:
        st.info("No collection entries yet. Record a collection to see insights.")


# Farmers page
def show_farmers_page(book: ProcurementBook):
    st.header("Farmer Directory")
    st.write("Maintain up-to-date producer profiles and negotiated milk rates.")

    show_add_farmer_form(book)
    show_farmers_list(book)


def show_add_farmer_form(book: ProcurementBook):
    with st.form("add_farmer_form", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            name = st.text_input("Farmer Name", placeholder="e.g. Ramesh Gowda")
            village = st.text_input("Village / Route", placeholder="e.g. Hosanagara")
            contact = st.text_input("Mobile / WhatsApp", placeholder="98765 43210")
        with col2:
            code = st.text_input("Farmer Code", placeholder="Optional short code")
            rate = st.number_input("Rate per Liter (₹)", min_value=0.0, step=0.1, value=config.DEFAULT_FARMER_RATE, key="farmer_rate")

        submit = st.form_submit_button("Save Farmer")

        if submit:
            try:
                farmer = build_farmer(name, village, contact, code, rate)
            except ValidationError as e:
                st.error(str(e))
            else:
                book.add_farmer(farmer)
                st.success(f"Farmer '{farmer.name}' added successfully!")


def show_farmers_list(book: ProcurementBook):
    st.subheader("Registered Farmers")
    query = st.text_input("Search farmer", key="farmer_search")
    farmers = filter_farmers(book.farmers, query)

    if not farmers:
        st.info("No farmers match the search.")
        return

    farmer_df = pd.DataFrame([
        {
            "Farmer": farmer.name,
            "Code": farmer_label(farmer),
            "Village": farmer.village,
            "Contact": farmer.contact,
            "Rate (₹/L)": farmer.rate_per_liter,
            "Status": "Active" if farmer.is_active else "Inactive"
        }
        for farmer in farmers
    ])
    st.dataframe(farmer_df, hide_index=True)

    col1, col2 = st.columns([3, 1])
    with col1:
        farmer_id = st.selectbox(
            "Select Farmer",
            options=[f.id for f in farmers],
            format_func=lambda x: farmer_option_label(farmers, x),
            key="toggle_farmer_select"
        )
    with col2:
        if st.button("Toggle Active Status", key="toggle_farmer_btn"):
            book.toggle_farmer_status(farmer_id)
            st.rerun()


# Collections page
def show_collections_page(book: ProcurementBook):
    st.header("Milk Collections")

    show_add_collection_form(book)
    show_collections_list(book)


def show_add_collection_form(book: ProcurementBook):
    st.subheader("Log Collection")

    farmers = book.active_farmers()
    if not farmers:
        st.warning("No active farmers found. Please add or activate a farmer first.")
        return

    farmer_id = st.selectbox(
        "Farmer",
        options=[f.id for f in farmers],
        format_func=lambda x: farmer_option_label(farmers, x),
        key="collection_farmer_select"
    )
    farmer = resolve_farmer(farmers, farmer_id)

    with st.form("add_collection_form", clear_on_submit=True):
        col1, col2 = st.columns(2)

        with col1:
            entry_date = st.date_input("Collection Date", value=get_selected_date())
            shift = st.radio("Shift", list(MILK_SHIFTS), horizontal=True)
            quantity = st.number_input("Quantity (L)", min_value=0.0, step=0.1, value=config.DEFAULT_COLLECTION_QUANTITY)
            notes = st.text_area("Notes (optional)", placeholder="Lacto reading, chilling comments or route notes")

        with col2:
            fat = st.number_input("Butter Fat %", min_value=0.0, step=0.1, value=config.DEFAULT_COLLECTION_FAT)
            snf = st.number_input("SNF %", min_value=0.0, step=0.1, value=config.DEFAULT_COLLECTION_SNF)
            rate = st.number_input(
                "Rate per Liter (₹)", min_value=0.0, step=0.1,
                value=float(farmer.rate_per_liter) if farmer else config.DEFAULT_COLLECTION_RATE,
                key=f"collection_rate_{farmer_id}"
            )

        submit = st.form_submit_button("Log Collection")

        if submit:
            try:
                entry = build_collection_entry(farmers, farmer_id, entry_date, shift, quantity, fat, snf, rate, notes)
            except ValidationError as e:
                st.error(str(e))
            else:
                book.add_collection(entry)
                st.success(f"Collection recorded: {format_number(entry.quantity_liters)} L at {format_currency(entry.rate_per_liter)}/L = {format_currency(entry.amount)}")


def show_collections_list(book: ProcurementBook):
    col1, col2 = st.columns(2)
    with col1:
        get_selected_date()
        selected_date = st.date_input("Show Date", key="selected_date")
    with col2:
        keyword = st.text_input("Quick search", key="collection_search")

    entries = filter_collections(book.collections, book.farmers, selected_date, keyword)
    st.subheader(f"{len(entries)} entries for {selected_date.strftime('%d-%m-%Y')}")

    if not entries:
        st.info("No collections recorded for this date yet.")
        return

    entry_df = pd.DataFrame([
        {
            "Farmer": farmer_name(book.farmers, entry.farmer_id),
            "Shift": entry.shift,
            "Litres": format_number(entry.quantity_liters),
            "Fat %": entry.fat_percentage,
            "SNF %": entry.snf_percentage,
            "Rate": format_currency(entry.rate_per_liter),
            "Amount": format_currency(entry.amount),
            "Notes": entry.notes or "-"
        }
        for entry in entries
    ])
    st.dataframe(entry_df, hide_index=True)

    summary = summarize_collections(entries)
    summary_col1, summary_col2, summary_col3 = st.columns(3)
    with summary_col1:
        st.metric("Total Milk", f"{format_number(summary.total_liters)} L")
    with summary_col2:
        st.metric("Total Amount", format_currency(summary.total_amount))
    with summary_col3:
        st.metric("Avg Fat / SNF", f"{summary.average_fat}% / {summary.average_snf}%")

    if st.button("Export to Excel", key="export_collections_excel"):
        excel_path = report_gen.export_collections_to_excel(
            entries, book.farmers, start_date=selected_date, end_date=selected_date
        )
        st.markdown(
            get_download_link(excel_path, "Download Excel Report"),
            unsafe_allow_html=True
        )


# Payments page
def show_payments_page(book: ProcurementBook):
    st.header("Payments & Balances")

    balances = compute_farmer_balances(book.farmers, book.collections, book.payments)

    col1, col2 = st.columns(2)
    with col1:
        st.metric("Total Paid", format_currency(sum(p.amount for p in book.payments)))
        st.caption(f"{len(book.payments)} transactions")
    with col2:
        st.metric("Outstanding", format_currency(compute_pending_dues(balances)))
        st.caption("Dues still to be settled")

    show_add_payment_form(book)
    show_balances_list(book, balances)
    show_statement_form(book)


def show_add_payment_form(book: ProcurementBook):
    st.subheader("Record Payment")

    farmers = book.farmers
    if not farmers:
        st.warning("No farmers found. Please add a farmer first.")
        return

    with st.form("add_payment_form", clear_on_submit=True):
        farmer_id = st.selectbox(
            "Farmer",
            options=[f.id for f in farmers],
            format_func=lambda x: farmer_option_label(farmers, x),
            key="payment_farmer_select"
        )

        col1, col2 = st.columns(2)
        with col1:
            payment_date = st.date_input("Payment Date", value=date.today())
            amount = st.number_input("Amount (₹)", min_value=0.0, step=0.5)
            method = st.selectbox("Method", options=list(PAYMENT_METHODS))
        with col2:
            reference = st.text_input("Reference", placeholder="UTR / cheque no")
            notes = st.text_area("Notes", placeholder="Payment remarks")

        submit = st.form_submit_button("Record Payment")

        if submit:
            try:
                record = build_payment_record(farmer_id, payment_date, amount, method, reference, notes)
            except ValidationError as e:
                st.error(str(e))
            else:
                book.add_payment(record)
                st.success(f"Payment of {format_currency(record.amount)} recorded for {farmer_option_label(farmers, farmer_id)}")


def show_balances_list(book: ProcurementBook, balances):
    st.subheader("Farmer Balances")
    query = st.text_input("Search farmer", key="balance_search")
    rows = sorted(filter_balances(balances, query), key=lambda row: row.balance, reverse=True)

    if not rows:
        st.info("No farmers match the search.")
        return

    balance_df = pd.DataFrame([
        {
            "Farmer": row.farmer.name,
            "Village": row.farmer.village,
            "Volume": f"{format_number(row.total_liters)} L",
            "Billed": format_currency(row.total_amount),
            "Paid": format_currency(row.amount_paid),
            "Balance": format_currency(row.balance)
        }
        for row in rows
    ])
    st.dataframe(balance_df, hide_index=True)

    if st.button("Export Payments to Excel", key="export_payments_excel"):
        excel_path = report_gen.export_payments_to_excel(book.payments, book.farmers)
        st.markdown(
            get_download_link(excel_path, "Download Excel Report"),
            unsafe_allow_html=True
        )


def show_statement_form(book: ProcurementBook):
    st.subheader("Farmer Statement")

    farmers = book.farmers
    if not farmers:
        return

    farmer_id = st.selectbox(
        "Select Farmer",
        options=[f.id for f in farmers],
        format_func=lambda x: farmer_option_label(farmers, x),
        key="statement_farmer_select"
    )

    col1, col2 = st.columns(2)
    with col1:
        start_date = st.date_input("From Date", value=date.today().replace(day=1), key="statement_start")
    with col2:
        end_date = st.date_input("To Date", value=date.today(), key="statement_end")

    if st.button("Generate PDF Statement", key="statement_pdf"):
        statement = book.build_farmer_statement(farmer_id, start_date, end_date)
        if statement is None:
            st.error("Farmer not found.")
            return

        st.write(f"**Billed:** {format_currency(statement.total_amount)} | **Paid:** {format_currency(statement.amount_paid)} | **Balance:** {format_currency(statement.balance)}")
        pdf_path = report_gen.create_statement_pdf(statement)
        st.markdown(
            get_download_link(pdf_path, "Download PDF Statement"),
            unsafe_allow_html=True
        )


if __name__ == "__main__":
    main()
