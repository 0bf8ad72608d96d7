"""Unit tests for image storage backends, upload validation, and the orphaned-image sweep."""

import tempfile
import unittest
from pathlib import Path

from app.core.database import DatabaseMonitor, SessionLocal, engine
from app.schemas.posts import PostWrite
from app.services.image_store import DatabaseImageStore, LocalImageStore, is_valid_reference
from app.services.images import (
    ImageNotFoundError,
    ImageTooLargeError,
    ImageValidationError,
    UnsupportedMediaTypeError,
    delete_image,
    image_response_headers,
    image_url,
    reference_from_url,
    serve_image,
    sweep_orphans,
    upload_image,
)
from app.services.posts import create_post, soft_delete_post
from support import PNG_BYTES, reset_database

MAX_BYTES = 5 * 1024 * 1024


class TestReferences(unittest.TestCase):
    def test_reference_from_url(self) -> None:
        self.assertEqual(reference_from_url("/api/v1/images/abc.png"), "abc.png")
        self.assertEqual(reference_from_url("https://cdn.example.org/x/y/z.jpg?w=200"), "z.jpg")
        self.assertEqual(reference_from_url("abc"), "abc")

    def test_image_url(self) -> None:
        self.assertEqual(image_url("abc.png", "/api/v1"), "/api/v1/images/abc.png")

    def test_path_segments_are_not_references(self) -> None:
        for bad in ("../secret", "a/b.png", "..", "", ".hidden"):
            self.assertFalse(is_valid_reference(bad), bad)
        self.assertTrue(is_valid_reference("1700000000000-a1b2c3d4e5f6.png"))


class TestLocalImageStore(unittest.TestCase):
    def setUp(self) -> None:
        self._dir = tempfile.TemporaryDirectory()
        self.store = LocalImageStore(self._dir.name)

    def tearDown(self) -> None:
        self._dir.cleanup()

    def test_upload_then_serve(self) -> None:
        ref = upload_image(self.store, PNG_BYTES, "foto.png", "image/png", MAX_BYTES)
        self.assertNotEqual(ref, "foto.png")
        self.assertTrue(ref.endswith(".png"))
        data, media_type = serve_image(self.store, ref)
        self.assertEqual(data, PNG_BYTES)
        self.assertEqual(media_type, "image/png")

    def test_references_are_unique(self) -> None:
        refs = {upload_image(self.store, PNG_BYTES, "same.png", "image/png", MAX_BYTES) for _ in range(20)}
        self.assertEqual(len(refs), 20)

    def test_extension_from_media_type_when_filename_has_none(self) -> None:
        ref = upload_image(self.store, PNG_BYTES, "blob", "image/png", MAX_BYTES)
        self.assertTrue(ref.endswith(".png"))

    def test_declared_type_wins_over_filename(self) -> None:
        ref = upload_image(self.store, PNG_BYTES, "photo.png", "image/jpeg", MAX_BYTES)
        self.assertFalse(ref.endswith(".png"))
        _, media_type = serve_image(self.store, ref)
        self.assertEqual(media_type, "image/jpeg")

    def test_svg_is_served_sandboxed(self) -> None:
        headers = image_response_headers("image/svg+xml")
        self.assertIn("sandbox", headers["Content-Security-Policy"])
        self.assertEqual(headers["X-Content-Type-Options"], "nosniff")
        self.assertNotIn("Content-Security-Policy", image_response_headers("image/png"))

    def test_traversal_reference_not_served(self) -> None:
        with tempfile.TemporaryDirectory() as outer:
            store = LocalImageStore(Path(outer) / "uploads")
            Path(outer, "outside.png").write_bytes(PNG_BYTES)
            with self.assertRaises(ImageNotFoundError):
                serve_image(store, "../outside.png")
            with self.assertRaises(ImageNotFoundError):
                delete_image(store, "../outside.png")
            self.assertTrue(Path(outer, "outside.png").exists())

    def test_delete_then_missing(self) -> None:
        ref = upload_image(self.store, PNG_BYTES, "a.png", "image/png", MAX_BYTES)
        delete_image(self.store, ref)
        with self.assertRaises(ImageNotFoundError):
            serve_image(self.store, ref)
        with self.assertRaises(ImageNotFoundError):
            delete_image(self.store, ref)


class TestUploadValidation(unittest.TestCase):
    def setUp(self) -> None:
        self._dir = tempfile.TemporaryDirectory()
        self.store = LocalImageStore(self._dir.name)

    def tearDown(self) -> None:
        self._dir.cleanup()

    def test_non_image_rejected(self) -> None:
        for content_type in ("text/plain", "application/pdf", None, ""):
            with self.assertRaises(UnsupportedMediaTypeError, msg=content_type):
                upload_image(self.store, b"hello", "a.txt", content_type, MAX_BYTES)
        self.assertEqual(self.store.list_references(), set())

    def test_too_large_rejected(self) -> None:
        with self.assertRaises(ImageTooLargeError):
            upload_image(self.store, b"x" * (MAX_BYTES + 1), "big.jpg", "image/jpeg", MAX_BYTES)

    def test_exactly_at_ceiling_accepted(self) -> None:
        ref = upload_image(self.store, b"x" * MAX_BYTES, "ok.jpg", "image/jpeg", MAX_BYTES)
        self.assertIn(ref, self.store.list_references())

    def test_empty_rejected(self) -> None:
        with self.assertRaises(ImageValidationError):
            upload_image(self.store, b"", "a.png", "image/png", MAX_BYTES)


class TestDatabaseImageStore(unittest.TestCase):
    def setUp(self) -> None:
        reset_database()
        self.store = DatabaseImageStore(SessionLocal)

    def test_round_trip_keeps_declared_type(self) -> None:
        ref = upload_image(self.store, PNG_BYTES, "foto.webp", "image/webp", MAX_BYTES)
        self.assertEqual(len(ref), 32)
        self.assertEqual(serve_image(self.store, ref), (PNG_BYTES, "image/webp"))
        self.assertEqual(self.store.list_references(), {ref})

    def test_delete(self) -> None:
        ref = upload_image(self.store, PNG_BYTES, "foto.png", "image/png", MAX_BYTES)
        delete_image(self.store, ref)
        self.assertEqual(self.store.list_references(), set())
        with self.assertRaises(ImageNotFoundError):
            delete_image(self.store, ref)


class TestSweepOrphans(unittest.TestCase):
    """Only images referenced by active posts survive the sweep."""

    def setUp(self) -> None:
        reset_database()
        self.db = SessionLocal()
        self.monitor = DatabaseMonitor(engine)
        self._dir = tempfile.TemporaryDirectory()
        self.store = LocalImageStore(self._dir.name)

    def tearDown(self) -> None:
        self.db.close()
        self._dir.cleanup()

    def _upload(self) -> str:
        return upload_image(self.store, PNG_BYTES, "a.png", "image/png", MAX_BYTES)

    def _post(self, images: list[str]):
        fields = PostWrite(title="A", text="B", category="Eventos", date="2024-01-01", images=images)
        return create_post(self.db, self.monitor, "Almir", fields)

    def test_deletes_unreferenced_and_keeps_referenced(self) -> None:
        kept = self._upload()
        orphan = self._upload()
        self._post([image_url(kept, "/api/v1")])

        self.assertEqual(sweep_orphans(self.db, self.store), [orphan])
        self.assertEqual(self.store.list_references(), {kept})

    def test_inactive_posts_do_not_keep_images(self) -> None:
        ref = self._upload()
        post = self._post([image_url(ref, "/api/v1")])
        soft_delete_post(self.db, self.monitor, post.id)
        self.assertEqual(sweep_orphans(self.db, self.store), [ref])

    def test_second_run_is_idempotent(self) -> None:
        kept = self._upload()
        self._upload()
        self._upload()
        self._post([kept])
        self.assertEqual(len(sweep_orphans(self.db, self.store)), 2)
        self.assertEqual(sweep_orphans(self.db, self.store), [])
        self.assertEqual(self.store.list_references(), {kept})

    def test_external_urls_are_harmless(self) -> None:
        kept = self._upload()
        self._post(["https://example.org/banner.jpg", f"/api/v1/images/{kept}"])
        self.assertEqual(sweep_orphans(self.db, self.store), [])


if __name__ == "__main__":
    unittest.main()
