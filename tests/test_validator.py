import unittest
from pathlib import Path

from invoice_doctor.diagnostics import PriceInconsistency, RowError
from invoice_doctor.schema import HeaderContract
from invoice_doctor.tokenizer import parse
from invoice_doctor.validator import (
    build_price_index,
    is_significant,
    validate,
    validate_text,
)

ROOT = Path(__file__).resolve().parents[1]
SALES_SAMPLE = ROOT / "sample-data" / "sales_sample.csv"

HEADER = (
    "Tgl Permintaan,Tgl Selesai,Pemesan / Cabang,Item,Jumlah,Satuan,Harga,"
    "Total,Diskon,Biaya Jasa,Total + Biaya Jasa - Diskon"
)


def sheet(*rows: str) -> str:
    return "\n".join([HEADER, *rows])


class StructuralValidationTests(unittest.TestCase):
    def test_fewer_than_two_rows_yields_single_structural_error(self):
        for text in ["", "   \n\n", HEADER, "only one line"]:
            with self.subTest(text=text):
                result = validate_text(text)
                self.assertEqual(result.records, [])
                self.assertEqual(len(result.diagnostics), 1)
                error = result.diagnostics[0]
                self.assertIsInstance(error, RowError)
                self.assertEqual(error.issue_id, "structural_invalid_input")
                self.assertEqual(error.row, 0)

    def test_missing_headers_are_listed_in_one_diagnostic(self):
        text = "\n".join(
            [
                "Tgl Permintaan,Tgl Selesai,Pemesan / Cabang,Item,Jumlah,Satuan,Total,Diskon,Total + Biaya Jasa - Diskon",
                "1/1,1/2,Toko A,Bawang,10,kg,50000,0,50000",
            ]
        )
        result = validate_text(text)

        self.assertEqual(result.records, [])
        self.assertEqual(len(result.diagnostics), 1)
        error = result.diagnostics[0]
        self.assertEqual(error.issue_id, "structural_missing_headers")
        self.assertEqual(error.row, 2)
        self.assertEqual(error.message, "Missing header columns: harga, biaya jasa.")

    def test_header_lookup_is_case_insensitive_and_order_free(self):
        header = (
            "ITEM , harga,Tgl Permintaan,tgl selesai,PEMESAN / CABANG,Jumlah,Satuan,"
            "Total,Diskon,Biaya Jasa,Total + Biaya Jasa - Diskon"
        )
        text = header + "\nBawang,5000,1/1,1/2,Toko A,10,kg,50000,0,0,50000"
        result = validate_text(text)

        self.assertEqual(result.diagnostics, [])
        self.assertEqual(len(result.records), 1)
        record = result.records[0]
        self.assertEqual(record.item, "Bawang")
        self.assertEqual(record.price, 5000)
        self.assertEqual(record.customer, "Toko A")


class RecordAssemblyTests(unittest.TestCase):
    def test_currency_formatted_price_parses_and_row_is_clean(self):
        result = validate_text(sheet('1/1,1/2,Toko A,Bawang,10,kg,"Rp 5.000",50000,0,0,50000'))

        self.assertEqual(result.diagnostics, [])
        self.assertEqual(len(result.records), 1)
        record = result.records[0]
        self.assertEqual(record.item, "Bawang")
        self.assertEqual(record.price, 5000)
        self.assertEqual(record.quantity, 10)
        self.assertEqual(record.request_date, "1/1")
        self.assertEqual(record.completion_date, "1/2")
        self.assertFalse(record.has_price_inconsistency)
        self.assertFalse(record.has_significant_price_inconsistency)

    def test_blank_optional_fields_default_to_zero(self):
        result = validate_text(sheet("1/1,1/2,Toko A,Apel,2,kg,30000,60000,,,60000"))

        record = result.records[0]
        self.assertEqual(record.discount, 0)
        self.assertEqual(record.service_fee, 0)

    def test_unparsable_optional_fields_do_not_invalidate_row(self):
        result = validate_text(sheet("1/1,1/2,Toko A,Apel,2,kg,30000,60000,n/a,-,60000"))

        self.assertEqual(result.diagnostics, [])
        self.assertEqual(result.records[0].discount, 0)
        self.assertEqual(result.records[0].service_fee, 0)

    def test_each_bad_required_field_gets_its_own_error(self):
        result = validate_text(
            sheet(
                "1/1,1/2,Toko A,Apel,2,kg,30000,60000,0,0,60000",
                "1/1,1/2,Toko A,Jeruk,lots,kg,abc,60000,0,0,",
            )
        )

        self.assertEqual([record.item for record in result.records], ["Apel"])
        errors = result.row_errors
        self.assertEqual([error.row for error in errors], [3, 3, 3])
        self.assertEqual([error.field for error in errors], ["Jumlah", "Harga", "Total + Biaya Jasa - Diskon"])
        self.assertEqual(errors[0].message, "Jumlah is not a valid number: 'lots'.")
        self.assertEqual(errors[2].value, "")

    def test_blank_rows_are_skipped_silently(self):
        result = validate_text(sheet(",,,,,,,,,,", "1/1,1/2,Toko A,Apel,2,kg,30000,60000,0,0,60000"))

        self.assertEqual(result.diagnostics, [])
        self.assertEqual(len(result.records), 1)

    def test_short_rows_treat_missing_cells_as_empty(self):
        result = validate_text(sheet("1/1,1/2,Toko A,Apel,2"))

        self.assertEqual(result.records, [])
        self.assertEqual(
            [error.field for error in result.row_errors],
            ["Harga", "Total", "Total + Biaya Jasa - Diskon"],
        )
        self.assertTrue(all(error.row == 2 for error in result.row_errors))

    def test_records_sorted_by_item_regardless_of_input_order(self):
        result = validate_text(
            sheet(
                "1/1,1/2,Toko A,wortel,1,kg,100,100,0,0,100",
                "1/1,1/2,Toko A,Apel,1,kg,100,100,0,0,100",
                "1/1,1/2,Toko A,bawang,1,kg,100,100,0,0,100",
                "1/1,1/2,Toko A,Ćabai,1,kg,100,100,0,0,100",
            )
        )

        self.assertEqual([record.item for record in result.records], ["Apel", "bawang", "Ćabai", "wortel"])

    def test_validate_is_idempotent(self):
        text = SALES_SAMPLE.read_text(encoding="utf-8")
        first = validate_text(text)
        second = validate_text(text)

        self.assertEqual(first.records, second.records)
        self.assertEqual(first.diagnostics, second.diagnostics)


class PriceConsistencyTests(unittest.TestCase):
    def test_spread_above_threshold_is_significant(self):
        result = validate_text(
            sheet(
                "1/1,1/2,Toko A,Bawang,1,kg,100,100,0,0,100",
                "1/1,1/2,Toko B,bawang,1,kg,150,150,0,0,150",
            )
        )

        self.assertEqual(len(result.price_findings), 1)
        finding = result.price_findings[0]
        self.assertEqual(finding.item, "Bawang")
        self.assertEqual(finding.prices, (100, 150))
        self.assertTrue(finding.significant)
        self.assertTrue(all(record.has_price_inconsistency for record in result.records))
        self.assertTrue(all(record.has_significant_price_inconsistency for record in result.records))

    def test_spread_within_threshold_is_not_significant(self):
        result = validate_text(
            sheet(
                "1/1,1/2,Toko A,Bawang,1,kg,110,110,0,0,110",
                "1/1,1/2,Toko B,Bawang,1,kg,100,100,0,0,100",
                "1/1,1/2,Toko C,Bawang,1,kg,100,100,0,0,100",
            )
        )

        finding = result.price_findings[0]
        self.assertEqual(finding.prices, (100, 110))
        self.assertFalse(finding.significant)
        self.assertTrue(all(record.has_price_inconsistency for record in result.records))
        self.assertFalse(any(record.has_significant_price_inconsistency for record in result.records))

    def test_same_price_written_with_rupiah_variants_is_consistent(self):
        result = validate_text(
            sheet(
                '1/1,1/2,Toko A,Bawang,10,kg,"Rp 5.000",50000,0,0,50000',
                '1/1,1/2,Toko B,Bawang,10,kg,"Rp 5.000,-",50000,0,0,50000',
                '1/1,1/2,Toko C,Bawang,10,kg,Rp. 5.000,50000,0,0,50000',
            )
        )

        self.assertEqual(result.diagnostics, [])
        self.assertEqual([record.price for record in result.records], [5000, 5000, 5000])
        self.assertFalse(any(record.has_price_inconsistency for record in result.records))

    def test_exact_threshold_is_not_significant(self):
        self.assertFalse(is_significant({100.0, 125.0}))
        self.assertTrue(is_significant({100.0, 125.5}))

    def test_non_positive_minimum_disqualifies_significance(self):
        self.assertFalse(is_significant({0.0, 500.0}))
        self.assertFalse(is_significant({-10.0, 500.0}))

    def test_threshold_can_be_tightened(self):
        text = sheet(
            "1/1,1/2,Toko A,Bawang,1,kg,100,100,0,0,100",
            "1/1,1/2,Toko B,Bawang,1,kg,110,110,0,0,110",
        )
        result = validate(parse(text), threshold=0.05)

        self.assertTrue(result.price_findings[0].significant)

    def test_price_index_skips_rows_too_short_and_unparsable_prices(self):
        grid = [
            ["item", "harga"],
            ["Apel", "100"],
            ["apel ", "120"],
            ["Apel"],
            ["Apel", "mahal"],
            ["", "90"],
        ]
        self.assertEqual(build_price_index(grid, 0, 1), {"apel": {100.0, 120.0}})

    def test_price_findings_precede_row_errors_and_are_sorted(self):
        result = validate_text(SALES_SAMPLE.read_text(encoding="utf-8"))

        kinds = [type(item) for item in result.diagnostics]
        self.assertEqual(kinds, [PriceInconsistency, PriceInconsistency, RowError])
        bawang, wortel, bad_row = result.diagnostics
        self.assertEqual(bawang.item, "Bawang Merah")
        self.assertEqual(bawang.prices, (40000, 52000))
        self.assertTrue(bawang.significant)
        self.assertEqual(wortel.item, "Wortel")
        self.assertEqual(wortel.prices, (12000, 13000))
        self.assertFalse(wortel.significant)
        self.assertEqual(bad_row.row, 6)
        self.assertEqual(bad_row.field, "Harga")

        self.assertEqual(
            [record.item for record in result.records],
            ["Ayam Fillet", "bawang merah", "Bawang Merah", "Wortel", "Wortel"],
        )
        self.assertEqual(result.records[1].customer, "Toko Sari, Bekasi")
        self.assertEqual(result.records[1].discount, 6000)

    def test_custom_header_labels_drive_column_resolution(self):
        contract = HeaderContract({"item": "Product", "price": "Unit Price"})
        text = "\n".join(
            [
                "Tgl Permintaan,Tgl Selesai,Pemesan / Cabang,Product,Jumlah,Satuan,Unit Price,Total,Diskon,Biaya Jasa,Total + Biaya Jasa - Diskon",
                "1/1,1/2,Toko A,Apel,2,kg,abc,60000,0,0,60000",
            ]
        )
        result = validate_text(text, contract=contract)

        self.assertEqual(result.row_errors[0].field, "Unit Price")


if __name__ == "__main__":
    unittest.main()
