"""
Firebase service for Django - Auth, Firestore and Storage integration.

Firestore collections are named in constants.py. Subcollections are addressed
with slash paths, e.g. "podcasts/{podcastId}/services".
"""
import json
import logging
import os
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

import firebase_admin
from firebase_admin import auth, credentials, firestore, storage

from . import constants
from .errors import FirestoreError, FirestoreUnavailable, StorageError

logger = logging.getLogger("marketplace")

# Firestore rejects batches with more writes than this
BATCH_WRITE_LIMIT = 500

# Firebase Admin initialization
_firebase_app = None
_firestore_client = None
_firebase_init_attempted = False


def get_firebase_app():
    """Get or initialize Firebase Admin app"""
    global _firebase_app, _firebase_init_attempted

    if _firebase_app is not None:
        return _firebase_app

    if _firebase_init_attempted:
        # Already tried and failed
        return None

    _firebase_init_attempted = True

    use_emulator = os.environ.get("FIREBASE_USE_EMULATOR", "false").lower() == "true"
    project_id = os.environ.get("FIREBASE_PROJECT_ID")
    options = {}
    if project_id:
        options["projectId"] = project_id
    if os.environ.get("FIREBASE_STORAGE_BUCKET"):
        options["storageBucket"] = os.environ["FIREBASE_STORAGE_BUCKET"]

    logger.info(f"Firebase init: use_emulator={use_emulator}, project_id={project_id}")

    if use_emulator:
        firestore_host = os.environ.get("FIRESTORE_EMULATOR_HOST", "localhost:8080")
        os.environ["FIRESTORE_EMULATOR_HOST"] = firestore_host
        options.setdefault("projectId", "demo-project")

        try:
            _firebase_app = firebase_admin.initialize_app(credential=None, options=options)
            logger.info(f"Firebase Admin initialized with EMULATOR (Firestore: {firestore_host})")
        except ValueError:
            # Already initialized
            _firebase_app = firebase_admin.get_app()
        return _firebase_app

    service_account_json = os.environ.get("FIREBASE_SERVICE_ACCOUNT")
    service_account_path = os.environ.get("FIREBASE_SERVICE_ACCOUNT_PATH")

    cred = None
    if service_account_json:
        try:
            cred = credentials.Certificate(json.loads(service_account_json))
            logger.info("Using FIREBASE_SERVICE_ACCOUNT env var")
        except json.JSONDecodeError as e:
            logger.error(f"Invalid FIREBASE_SERVICE_ACCOUNT JSON: {e}")
    elif service_account_path and os.path.exists(service_account_path):
        cred = credentials.Certificate(service_account_path)
        logger.info(f"Using service account from {service_account_path}")

    if cred is None:
        logger.warning("Firebase credentials not found - Firestore operations will fail")
        return None

    try:
        _firebase_app = firebase_admin.initialize_app(cred, options=options or None)
        logger.info("Firebase Admin initialized (production)")
    except ValueError:
        _firebase_app = firebase_admin.get_app()

    return _firebase_app


def get_firestore():
    """Get Firestore client"""
    global _firestore_client

    if _firestore_client is not None:
        return _firestore_client

    app = get_firebase_app()
    if app is None:
        return None

    try:
        _firestore_client = firestore.client(app=app)
        return _firestore_client
    except Exception as e:
        logger.error(f"Failed to get Firestore client: {e}")
        return None


def verify_id_token(id_token: str) -> Optional[Dict[str, Any]]:
    """Decoded Firebase ID token claims, or None when the token is not valid."""
    app = get_firebase_app()
    if app is None:
        logger.warning("Firebase not configured - cannot verify ID tokens")
        return None

    try:
        return auth.verify_id_token(id_token, app=app)
    except (auth.InvalidIdTokenError, auth.CertificateFetchError, ValueError) as e:
        logger.warning(f"ID token verification failed: {e}")
        return None


def set_custom_claims(uid: str, claims: Dict[str, Any]) -> None:
    app = get_firebase_app()
    if app is None:
        raise FirestoreUnavailable("Firebase is not configured")
    auth.set_custom_user_claims(uid, claims, app=app)


def upload_pdf(path: str, data: bytes, metadata: Dict[str, str], expires: timedelta) -> str:
    """
    Store a PDF in the default Storage bucket and return a signed read URL
    valid for `expires`.
    """
    app = get_firebase_app()
    if app is None:
        raise FirestoreUnavailable("Firebase is not configured")

    try:
        blob = storage.bucket(app=app).blob(path)
        blob.metadata = metadata
        blob.upload_from_string(data, content_type="application/pdf")
        url = blob.generate_signed_url(expiration=expires, method="GET")
    except Exception as e:
        logger.error(f"Error uploading {path}: {e}")
        raise StorageError(f"Failed to upload {path}") from e

    logger.info(f"Uploaded {path} ({len(data)} bytes)")
    return url


def subcollection(parent: str, parent_id: str, name: str) -> str:
    return f"{parent}/{parent_id}/{name}"


@contextmanager
def _firestore_call(action: str):
    try:
        yield
    except Exception as e:
        logger.error(f"Firestore {action} failed: {e}")
        raise FirestoreError(f"Firestore {action} failed") from e


class FirestoreService:
    """Service class for Firestore operations"""

    def __init__(self):
        self._db = None

    @property
    def db(self):
        """Lazy initialization of Firestore client"""
        if self._db is None:
            self._db = get_firestore()
        return self._db

    def is_available(self) -> bool:
        """Check if Firestore is available"""
        return self.db is not None

    def _client(self):
        if self.db is None:
            raise FirestoreUnavailable("Firebase Firestore is not configured")
        return self.db

    def collection(self, path: str):
        return self._client().collection(path)

    @staticmethod
    def _to_dict(snapshot) -> Dict[str, Any]:
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        return data

    # =========================================================================
    # Generic document operations
    # =========================================================================

    def get(self, path: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Document as a dict with its "id", or None if it does not exist."""
        if not doc_id:
            return None
        ref = self.collection(path).document(doc_id)
        with _firestore_call(f"get {path}/{doc_id}"):
            snapshot = ref.get()
        if not snapshot.exists:
            return None
        return self._to_dict(snapshot)

    def create(self, path: str, data: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        coll = self.collection(path)
        ref = coll.document(doc_id) if doc_id else coll.document()
        with _firestore_call(f"create in {path}"):
            ref.set(data)
        logger.info(f"Created {path}/{ref.id}")
        return ref.id

    def new_id(self, path: str) -> str:
        """Reserve an auto id in path, for documents written through batch_write."""
        return self.collection(path).document().id

    def set(self, path: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        ref = self.collection(path).document(doc_id)
        with _firestore_call(f"set {path}/{doc_id}"):
            ref.set(data, merge=merge)

    def update(self, path: str, doc_id: str, data: Dict[str, Any]) -> None:
        ref = self.collection(path).document(doc_id)
        with _firestore_call(f"update {path}/{doc_id}"):
            ref.update(data)

    def delete(self, path: str, doc_id: str) -> None:
        ref = self.collection(path).document(doc_id)
        with _firestore_call(f"delete {path}/{doc_id}"):
            ref.delete()

    def query(
        self,
        path: str,
        filters: Iterable[Tuple[str, str, Any]] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Run a simple query.

        filters: (field, op, value) tuples, e.g. ("status", "==", "pending")
        """
        query = self.collection(path)
        for field, op, value in filters:
            query = query.where(field, op, value)
        if order_by:
            query = query.order_by(order_by, direction="DESCENDING" if descending else "ASCENDING")
        if limit:
            query = query.limit(limit)

        with _firestore_call(f"query {path}"):
            return [self._to_dict(doc) for doc in query.stream()]

    def batch_write(self, operations: Iterable[Tuple[str, str, str, Optional[Dict[str, Any]]]]) -> int:
        """
        Commit (op, path, doc_id, data) operations in batches of up to
        BATCH_WRITE_LIMIT writes. Each batch is atomic on its own.
        op is one of "set", "update", "delete".
        """
        db = self._client()
        batch = db.batch()
        count = 0
        pending = 0
        for op, path, doc_id, data in operations:
            ref = db.collection(path).document(doc_id)
            if op == "delete":
                batch.delete(ref)
            elif op == "set":
                batch.set(ref, data)
            else:
                batch.update(ref, data)
            count += 1
            pending += 1

            if pending == BATCH_WRITE_LIMIT:
                with _firestore_call("batch commit"):
                    batch.commit()
                batch = db.batch()
                pending = 0

        if pending:
            with _firestore_call("batch commit"):
                batch.commit()
        return count

    # =========================================================================
    # Users and podcasts
    # =========================================================================

    def get_user(self, uid: str) -> Optional[Dict[str, Any]]:
        return self.get(constants.USERS, uid)

    def find_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        users = self.query(constants.USERS, [("email", "==", email)], limit=1)
        return users[0] if users else None

    def is_admin(self, uid: str) -> bool:
        user = self.get_user(uid)
        return bool(user) and user.get("role") == constants.ROLE_ADMIN

    def podcasts_for_owner(self, uid: str) -> List[Dict[str, Any]]:
        return self.query(constants.PODCASTS, [("ownerId", "==", uid)])

    def first_podcast_for_owner(self, uid: str) -> Optional[Dict[str, Any]]:
        podcasts = self.query(constants.PODCASTS, [("ownerId", "==", uid)], limit=1)
        return podcasts[0] if podcasts else None

    def guest_settings(self) -> Dict[str, Any]:
        """Platform guest settings with defaults filled in."""
        stored = self.get(constants.PLATFORM_SETTINGS, constants.GUEST_SETTINGS_DOC) or {}
        stored.pop("id", None)
        settings = dict(constants.DEFAULT_GUEST_SETTINGS)
        settings.update(stored)
        return settings

    def add_to_array(self, path: str, doc_id: str, field: str, value: Any) -> None:
        self.update(path, doc_id, {field: firestore.ArrayUnion([value])})


# Singleton instance
firestore_service = FirestoreService()
