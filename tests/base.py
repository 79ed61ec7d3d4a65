import json
from unittest import mock

from django.test import SimpleTestCase, override_settings

from marketplace.firebase_service import firestore_service

from .fakes import FakeFirestore


@override_settings(CRON_SECRET="cron-secret")
class APITestCase(SimpleTestCase):
    """Runs views against an in-memory Firestore with stubbed auth and email."""

    def setUp(self):
        super().setUp()
        self.db = FakeFirestore()
        db_patch = mock.patch.object(firestore_service, "_db", self.db)
        db_patch.start()
        self.addCleanup(db_patch.stop)

        self.tokens = {}
        auth_patch = mock.patch("marketplace.auth.verify_id_token", side_effect=self.tokens.get)
        auth_patch.start()
        self.addCleanup(auth_patch.stop)

        mail_patch = mock.patch("marketplace.emails.deliver", return_value=True)
        self.deliver = mail_patch.start()
        self.addCleanup(mail_patch.stop)

    # -- helpers --------------------------------------------------------------

    def login(self, uid, email=None, **profile):
        """Register a token for uid and store its users/{uid} profile."""
        email = email or f"{uid}@example.com"
        self.tokens[f"token-{uid}"] = {"uid": uid, "email": email}
        self.db.add("users", uid, {"email": email, "displayName": uid.title(), **profile})
        return uid

    def _auth(self, uid):
        return {"HTTP_AUTHORIZATION": f"Bearer token-{uid}"} if uid else {}

    def get(self, path, uid=None, data=None, **extra):
        return self.client.get(f"/api/{path}", data or {}, **self._auth(uid), **extra)

    def send(self, method, path, body=None, uid=None, **extra):
        call = getattr(self.client, method)
        return call(
            f"/api/{path}",
            data=json.dumps(body if body is not None else {}),
            content_type="application/json",
            **self._auth(uid),
            **extra,
        )

    def post(self, path, body=None, uid=None, **extra):
        return self.send("post", path, body, uid, **extra)

    def put(self, path, body=None, uid=None, **extra):
        return self.send("put", path, body, uid, **extra)

    def sent_to(self):
        return [call.args[0] for call in self.deliver.call_args_list]

    def subjects(self):
        return [call.args[1] for call in self.deliver.call_args_list]
