from __future__ import annotations

import unittest
from unittest.mock import patch

from tests.support import api_client, register, reset_database

from app.core import messages
from app.core.errors import DeliveryFailed


class InvoicesApiTests(unittest.TestCase):
    def setUp(self):
        reset_database()
        self.client = register()
        res = self.client.post(
            "/clients",
            json={"type": "company", "name": "Buyer LLC", "tax_id": "205000000", "email": "buyer@example.ge"},
        )
        self.assertEqual(res.status_code, 201, res.text)
        self.client_id = res.json()["id"]

    def _create(self, **extra):
        body = {
            "client_id": self.client_id,
            "items": [
                {"description": "Design", "quantity": "2", "unit_price": "50"},
                {"description": "Hosting", "quantity": "1", "unit_price": "25"},
            ],
        }
        body.update(extra)
        return self.client.post("/invoices", json=body)

    def test_requires_session(self):
        res = api_client().get("/invoices")
        self.assertEqual(res.status_code, 401)
        self.assertEqual(res.json(), {"error": messages.UNAUTHORIZED})

    def test_create_and_read(self):
        res = self._create()
        self.assertEqual(res.status_code, 201, res.text)
        data = res.json()
        self.assertRegex(data["invoice_number"], r"^INV-\d{4}-0001$")
        self.assertEqual(data["status"], "draft")
        self.assertEqual(float(data["subtotal"]), 125.0)
        self.assertEqual(float(data["vat_amount"]), 22.5)
        self.assertEqual(float(data["total"]), 147.5)
        self.assertEqual(data["pdf_url"], f"/invoices/{data['id']}/pdf")
        self.assertTrue(data["public_url"].endswith(f"/i/{data['public_token']}"))

        fetched = self.client.get(f"/invoices/{data['id']}")
        self.assertEqual(fetched.status_code, 200)
        self.assertEqual(fetched.json()["client"]["name"], "Buyer LLC")

        listing = self.client.get("/invoices", params={"search": "buyer"}).json()
        self.assertEqual(listing["pagination"]["total"], 1)
        self.assertEqual(listing["invoices"][0]["id"], data["id"])

    def test_validation_errors_use_error_envelope(self):
        res = self._create(items=[])
        self.assertEqual(res.status_code, 400)
        body = res.json()
        self.assertEqual(body["error"], messages.INVALID_DATA)
        self.assertIsInstance(body["details"], list)

    def test_credit_exhaustion_returns_403(self):
        for _ in range(5):
            self.assertEqual(self._create().status_code, 201)
        res = self._create()
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.json()["error"], messages.NO_CREDITS)
        credits = self.client.get("/user/credits").json()
        self.assertEqual(credits["available_credits"], 0)
        self.assertEqual(self.client.get("/invoices").json()["pagination"]["total"], 5)

    def test_delete_draft_cancels_and_refunds(self):
        invoice_id = self._create().json()["id"]
        res = self.client.delete(f"/invoices/{invoice_id}")
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["invoice"]["status"], "cancelled")
        self.assertEqual(self.client.get("/user/credits").json()["used_credits"], 0)
        again = self.client.delete(f"/invoices/{invoice_id}")
        self.assertEqual(again.status_code, 403)

    def test_status_change_and_edit_lock(self):
        invoice_id = self._create().json()["id"]
        res = self.client.patch(f"/invoices/{invoice_id}/status", json={"status": "paid"})
        self.assertEqual(res.status_code, 403)
        res = self.client.patch(f"/invoices/{invoice_id}/status", json={"status": "sent"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.json()["old_status"], "draft")
        self.assertEqual(res.json()["message"], messages.STATUS_MESSAGES["sent"])
        self.client.patch(f"/invoices/{invoice_id}/status", json={"status": "paid"})
        res = self.client.put(f"/invoices/{invoice_id}", json={"notes": "late edit"})
        self.assertEqual(res.status_code, 403)
        self.assertEqual(res.json()["error"], messages.INVOICE_NOT_EDITABLE)

    def test_other_tenant_sees_not_found(self):
        invoice_id = self._create().json()["id"]
        intruder = register(email="intruder@example.ge", company_name="Other")
        self.assertEqual(intruder.get(f"/invoices/{invoice_id}").status_code, 404)
        self.assertEqual(intruder.delete(f"/invoices/{invoice_id}").status_code, 404)
        self.assertEqual(intruder.get(f"/clients/{self.client_id}").status_code, 404)

    def test_public_link_lifecycle(self):
        data = self._create(public_link=False).json()
        self.assertIsNone(data["public_url"])
        link = self.client.post(f"/invoices/{data['id']}/public-link", json={}).json()
        anonymous = api_client()
        view = anonymous.get(f"/i/{link['token']}")
        self.assertEqual(view.status_code, 200, view.text)
        self.assertEqual(view.json()["invoice_number"], data["invoice_number"])
        self.assertNotIn("public_token", view.json())
        pdf = anonymous.get(f"/i/{link['token']}/pdf")
        self.assertEqual(pdf.status_code, 200)
        self.assertTrue(pdf.content.startswith(b"%PDF"))

        self.client.delete(f"/invoices/{data['id']}/public-link")
        gone = anonymous.get(f"/i/{link['token']}")
        unknown = anonymous.get("/i/never-issued")
        self.assertEqual(gone.status_code, 404)
        self.assertEqual(gone.json(), unknown.json())

    def test_pdf_download(self):
        invoice_id = self._create().json()["id"]
        res = self.client.get(f"/invoices/{invoice_id}/pdf")
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.headers["content-type"], "application/pdf")
        self.assertIn("invoice-INV-", res.headers["content-disposition"])

    def test_send_marks_draft_as_sent(self):
        invoice_id = self._create().json()["id"]
        with patch("app.services.invoicing.mailer.deliver") as deliver:
            res = self.client.post(f"/invoices/{invoice_id}/send", json={"message": "გმადლობთ"})
        self.assertEqual(res.status_code, 200, res.text)
        self.assertEqual(res.json()["status"], "sent")
        self.assertEqual(res.json()["recipients"]["to"], ["buyer@example.ge"])
        msg = deliver.call_args[0][0]
        self.assertEqual(msg["To"], "buyer@example.ge")
        self.assertEqual(len(list(msg.iter_attachments())), 1)

    def test_send_failure_keeps_draft(self):
        invoice_id = self._create().json()["id"]
        with patch("app.services.invoicing.mailer.deliver", side_effect=DeliveryFailed(details="smtp down")):
            res = self.client.post(f"/invoices/{invoice_id}/send", json={"attach_pdf": False})
        self.assertEqual(res.status_code, 502)
        self.assertEqual(self.client.get(f"/invoices/{invoice_id}").json()["status"], "draft")

    def test_duplicate(self):
        invoice_id = self._create().json()["id"]
        res = self.client.post(f"/invoices/{invoice_id}/duplicate")
        self.assertEqual(res.status_code, 201, res.text)
        self.assertEqual(res.json()["original_invoice_id"], invoice_id)
        self.assertRegex(res.json()["invoice_number"], r"-0002$")

    def test_stats(self):
        self._create()
        stats = self.client.get("/invoices/stats").json()
        self.assertEqual(stats["total_invoices"], 1)
        self.assertEqual(stats["by_status"], {"draft": 1})

    def test_revenue_trends(self):
        self._create()
        res = self.client.get("/invoices/revenue-trends", params={"period": 1})
        self.assertEqual(res.status_code, 200, res.text)
        data = res.json()
        self.assertEqual(data["period"], 1)
        self.assertEqual(len(data["months"]), 1)
        self.assertEqual(data["months"][0]["invoice_count"], 1)
        self.assertEqual(float(data["summary"]["total_revenue"]), 147.5)
        self.assertEqual(len(self.client.get("/invoices/revenue-trends").json()["months"]), 12)

        bad = self.client.get("/invoices/revenue-trends", params={"period": 2})
        self.assertEqual(bad.status_code, 400)
        self.assertEqual(bad.json()["error"], messages.INVALID_PERIOD)


if __name__ == "__main__":
    unittest.main()
