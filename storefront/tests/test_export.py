import csv
import io
from datetime import date

from django.test import SimpleTestCase

from storefront.export import CSV_HEADERS, csv_download, export_filename, inquiries_to_csv
from storefront.tests.utils import make_inquiry


class InquiryCsvExportTests(SimpleTestCase):
    def test_header_row(self):
        text = inquiries_to_csv([])

        self.assertEqual(
            text,
            '"ID","Product Name","Customer Name","Phone","Reference","Quantity","Total Price","Status","Created At","Notes"',
        )

    def test_rows_read_back_with_quotes_and_newlines_intact(self):
        inquiry = make_inquiry('a1', notes='Said "call after 5"\nprefers WhatsApp')

        rows = list(csv.reader(io.StringIO(inquiries_to_csv([inquiry]))))

        self.assertEqual(rows[0], CSV_HEADERS)
        self.assertEqual(rows[1], [
            'a1', 'Linen Shirt', 'Jane Doe', '+254700000000', 'Instagram', '2', '80', 'pending',
            '2024-05-01T10:00:00.000Z', 'Said "call after 5"\nprefers WhatsApp',
        ])

    def test_embedded_quotes_are_doubled(self):
        text = inquiries_to_csv([make_inquiry('a1', notes='say "hi"')])

        self.assertIn('"say ""hi"""', text)

    def test_missing_values_use_defaults(self):
        inquiry = make_inquiry('a1')
        del inquiry['quantity']
        del inquiry['totalPrice']
        del inquiry['notes']

        rows = list(csv.reader(io.StringIO(inquiries_to_csv([inquiry]))))

        self.assertEqual(rows[1][5], '1')
        self.assertEqual(rows[1][6], '0')
        self.assertEqual(rows[1][9], '')

    def test_filename_carries_the_date(self):
        self.assertEqual(export_filename(date(2024, 3, 9)), 'order-inquiries-2024-03-09.csv')

    def test_download_response(self):
        response = csv_download([make_inquiry()], today=date(2024, 3, 9))

        self.assertEqual(response['Content-Type'], 'text/csv; charset=utf-8')
        self.assertEqual(response['Content-Disposition'], 'attachment; filename="order-inquiries-2024-03-09.csv"')
        self.assertTrue(response.content.decode('utf-8').startswith('"ID"'))
