import logging
import os
import tempfile
from datetime import date
from typing import List, Optional

import pandas as pd
from fpdf import FPDF

from models import CollectionEntry, Farmer, FarmerStatement, PaymentRecord
from procurement import farmer_name

logger = logging.getLogger(__name__)


class DairyReportGenerator:
    def __init__(self, title: str = "Milk Collection Statement"):
        """Initialize the report generator."""
        self.title = title

    def create_statement_pdf(self, statement: FarmerStatement, output_filename: Optional[str] = None) -> str:
        """Create a PDF statement with farmer, collection and payment details."""
        pdf = FPDF(orientation="P", unit="mm", format="A4")
        pdf.add_page()

        pdf.set_font("Helvetica", "B", 18)
        pdf.cell(0, 15, self.title, 0, 1, "C")
        pdf.line(10, pdf.get_y(), 200, pdf.get_y())
        pdf.ln(5)

        farmer = statement.farmer
        pdf.set_font("Helvetica", "B", 14)
        pdf.cell(0, 10, f"Farmer: {farmer.name} ({farmer.code or farmer.id[:6]})", 0, 1, "C")

        pdf.set_font("Helvetica", "", 12)
        pdf.cell(0, 8, f"Village: {farmer.village}    Contact: {farmer.contact}", 0, 1, "C")
        pdf.cell(0, 8, f"Period: {statement.start_date.strftime('%d-%m-%Y')} to {statement.end_date.strftime('%d-%m-%Y')}", 0, 1, "C")
        pdf.ln(5)

        if statement.collections:
            pdf.set_font("Helvetica", "B", 14)
            pdf.cell(0, 10, "Milk Collections", 0, 1, "C")

            entries_by_date = {}
            for entry in statement.collections:
                entries_by_date.setdefault(entry.date, []).append(entry)

            # Column widths
            date_width = 28
            shift_width = 26
            liters_width = 26
            fat_width = 22
            snf_width = 22
            rate_width = 26
            amount_width = 40

            pdf.set_font("Helvetica", "B", 11)
            pdf.cell(date_width, 10, "Date", 1, 0, "C")
            pdf.cell(shift_width, 10, "Shift", 1, 0, "C")
            pdf.cell(liters_width, 10, "Litres", 1, 0, "C")
            pdf.cell(fat_width, 10, "Fat %", 1, 0, "C")
            pdf.cell(snf_width, 10, "SNF %", 1, 0, "C")
            pdf.cell(rate_width, 10, "Rate", 1, 0, "C")
            pdf.cell(amount_width, 10, "Amount (Rs)", 1, 1, "C")

            pdf.set_font("Helvetica", "", 10)
            total_liters = 0
            total_amount = 0

            for entry_date in sorted(entries_by_date):
                day_entries = sorted(
                    entries_by_date[entry_date],
                    key=lambda x: 0 if x.shift == "Morning" else 1
                )
                display_date = entry_date.strftime('%d-%m-%Y')

                day_liters = 0
                day_amount = 0
                for entry in day_entries:
                    pdf.cell(date_width, 8, display_date, 1, 0, "C")
                    pdf.cell(shift_width, 8, entry.shift, 1, 0, "C")
                    pdf.cell(liters_width, 8, f"{entry.quantity_liters:.2f}", 1, 0, "C")
                    pdf.cell(fat_width, 8, f"{entry.fat_percentage:.2f}", 1, 0, "C")
                    pdf.cell(snf_width, 8, f"{entry.snf_percentage:.2f}", 1, 0, "C")
                    pdf.cell(rate_width, 8, f"{entry.rate_per_liter:.2f}", 1, 0, "C")
                    pdf.cell(amount_width, 8, f"{entry.amount:.2f}", 1, 1, "C")
                    day_liters += entry.quantity_liters
                    day_amount += entry.amount

                total_liters += day_liters
                total_amount += day_amount

                pdf.set_font("Helvetica", "B", 10)
                pdf.cell(date_width, 8, "", 1, 0, "C")
                pdf.cell(shift_width, 8, "Day Total", 1, 0, "C")
                pdf.cell(liters_width, 8, f"{day_liters:.2f}", 1, 0, "C")
                pdf.cell(fat_width + snf_width + rate_width, 8, "", 1, 0, "C")
                pdf.cell(amount_width, 8, f"{day_amount:.2f}", 1, 1, "C")
                pdf.set_font("Helvetica", "", 10)

            pdf.set_font("Helvetica", "B", 11)
            pdf.cell(date_width, 10, "", 1, 0, "C")
            pdf.cell(shift_width, 10, "TOTAL", 1, 0, "C")
            pdf.cell(liters_width, 10, f"{total_liters:.2f}", 1, 0, "C")
            pdf.cell(fat_width + snf_width + rate_width, 10, "", 1, 0, "C")
            pdf.cell(amount_width, 10, f"{total_amount:.2f}", 1, 1, "C")

        if statement.payments:
            pdf.ln(10)
            pdf.set_font("Helvetica", "B", 14)
            pdf.cell(0, 10, "Payment History", 0, 1, "C")

            date_width = 40
            method_width = 45
            reference_width = 55
            amount_width = 50

            pdf.set_font("Helvetica", "B", 11)
            pdf.cell(date_width, 10, "Date", 1, 0, "C")
            pdf.cell(method_width, 10, "Method", 1, 0, "C")
            pdf.cell(reference_width, 10, "Reference", 1, 0, "C")
            pdf.cell(amount_width, 10, "Amount (Rs)", 1, 1, "C")

            pdf.set_font("Helvetica", "", 10)
            for payment in statement.payments:
                pdf.cell(date_width, 8, payment.date.strftime('%d-%m-%Y'), 1, 0, "C")
                pdf.cell(method_width, 8, payment.method, 1, 0, "C")
                pdf.cell(reference_width, 8, payment.reference or "-", 1, 0, "C")
                pdf.cell(amount_width, 8, f"{payment.amount:.2f}", 1, 1, "C")

            pdf.set_font("Helvetica", "B", 11)
            pdf.cell(date_width + method_width + reference_width, 10, "Total Paid", 1, 0, "C")
            pdf.cell(amount_width, 10, f"{statement.amount_paid:.2f}", 1, 1, "C")

        pdf.ln(10)
        pdf.set_font("Helvetica", "B", 14)
        if statement.balance < 0:
            pdf.cell(0, 10, f"Advance Paid: Rs. {-statement.balance:.2f}", 0, 1, "C")
        else:
            pdf.cell(0, 10, f"Remaining Balance: Rs. {statement.balance:.2f}", 0, 1, "C")

        # Signature lines
        pdf.ln(20)
        pdf.line(20, pdf.get_y(), 80, pdf.get_y())
        pdf.line(120, pdf.get_y(), 180, pdf.get_y())
        pdf.ln(5)
        pdf.cell(90, 10, "Farmer Signature", 0, 0, "C")
        pdf.cell(90, 10, "Authorized Signature", 0, 1, "C")

        if not output_filename:
            temp_dir = tempfile.gettempdir()
            output_filename = os.path.join(
                temp_dir, f"statement_{farmer.code or farmer.id[:6]}_{statement.start_date.strftime('%Y%m%d')}.pdf"
            )

        pdf.output(output_filename)
        logger.info("Wrote statement for farmer %s to %s", farmer.id, output_filename)
        return output_filename

    def export_collections_to_excel(self, collections: List[CollectionEntry], farmers: List[Farmer],
                                    start_date: Optional[date] = None, end_date: Optional[date] = None,
                                    output_filename: Optional[str] = None) -> str:
        """Export collection entries to Excel."""
        data = []
        for entry in collections:
            data.append({
                'Date': entry.date,
                'Shift': entry.shift,
                'Farmer': farmer_name(farmers, entry.farmer_id),
                'Litres': entry.quantity_liters,
                'Fat %': entry.fat_percentage,
                'SNF %': entry.snf_percentage,
                'Rate': entry.rate_per_liter,
                'Amount': entry.amount,
                'Notes': entry.notes or ""
            })

        df = pd.DataFrame(data, columns=['Date', 'Shift', 'Farmer', 'Litres', 'Fat %', 'SNF %', 'Rate', 'Amount', 'Notes'])

        if not output_filename:
            date_str = ""
            if start_date and end_date:
                date_str = f"_{start_date.strftime('%Y%m%d')}_to_{end_date.strftime('%Y%m%d')}"
            output_filename = os.path.join(tempfile.gettempdir(), f"collections{date_str}.xlsx")

        df.to_excel(output_filename, index=False)
        return output_filename

    def export_payments_to_excel(self, payments: List[PaymentRecord], farmers: List[Farmer],
                                 output_filename: Optional[str] = None) -> str:
        """Export payment records to Excel."""
        data = []
        for payment in payments:
            data.append({
                'Date': payment.date,
                'Farmer': farmer_name(farmers, payment.farmer_id),
                'Method': payment.method,
                'Reference': payment.reference or "",
                'Amount': payment.amount,
                'Notes': payment.notes or ""
            })

        df = pd.DataFrame(data, columns=['Date', 'Farmer', 'Method', 'Reference', 'Amount', 'Notes'])

        if not output_filename:
            output_filename = os.path.join(tempfile.gettempdir(), "payments.xlsx")

        with pd.ExcelWriter(output_filename, engine="xlsxwriter") as writer:
            df.to_excel(writer, sheet_name="Payments", index=False)
        return output_filename
