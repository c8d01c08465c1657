import unittest
from datetime import timedelta

from printshop.files import (
    ARTWORK_TABLE,
    ArtworkFile,
    ArtworkRegistry,
    ArtworkStatus,
    ArtworkTransitionError,
    CandidateFile,
    Dimensions,
    FileValidationResult,
    FileErrorCode,
    ValidationIssue,
    ValidationWarning,
    status_for,
)
from printshop.gateway import GatewayError, GatewayErrorKind, MemoryGateway

from tests.factories import FakeClock, make_upload_config, pdf_bytes, png_bytes


class TestArtworkTransitions(unittest.TestCase):

    def setUp(self):
        self.clock = FakeClock()
        self.pending = ArtworkFile(
            id="art-1",
            original_filename="front.pdf",
            stored_filename="front.pdf",
            file_path="artwork/art-1/front.pdf",
            mime_type="application/pdf",
            file_size=1024,
            created_at=self.clock.now,
            updated_at=self.clock.now,
        )

    def test_pending_settles(self):
        later = self.clock.now + timedelta(minutes=1)
        valid = self.pending.transition(ArtworkStatus.VALID, later)

        self.assertEqual(valid.validation_status, ArtworkStatus.VALID)
        self.assertEqual(valid.updated_at, later)
        self.assertEqual(self.pending.validation_status, ArtworkStatus.PENDING)

    def test_review_can_be_settled(self):
        flagged = self.pending.transition(ArtworkStatus.NEEDS_REVIEW, self.clock.now, "low dpi")
        approved = flagged.transition(ArtworkStatus.VALID, self.clock.now, "approved by prepress")
        self.assertEqual(approved.validation_notes, "approved by prepress")

    def test_settled_files_stay_settled(self):
        invalid = self.pending.transition(ArtworkStatus.INVALID, self.clock.now)
        with self.assertRaises(ArtworkTransitionError):
            invalid.transition(ArtworkStatus.VALID, self.clock.now)
        with self.assertRaises(ArtworkTransitionError):
            self.pending.transition(ArtworkStatus.PENDING, self.clock.now)

    def test_status_for_result(self):
        error = ValidationIssue(FileErrorCode.INVALID_TYPE, "bad type", "type")
        warning = ValidationWarning(FileErrorCode.LOW_RESOLUTION, "72 DPI")

        self.assertEqual(status_for(FileValidationResult()), ArtworkStatus.VALID)
        self.assertEqual(
            status_for(FileValidationResult(warnings=(warning,))), ArtworkStatus.NEEDS_REVIEW
        )
        self.assertEqual(
            status_for(FileValidationResult(errors=(error,), warnings=(warning,))),
            ArtworkStatus.INVALID,
        )


class TestArtworkRegistry(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.gateway = MemoryGateway()
        self.registry = ArtworkRegistry(self.gateway, bucket="artwork", clock=FakeClock())
        self.config = make_upload_config()

    async def test_submit_valid_file(self):
        file = CandidateFile("My Card (final).pdf", "application/pdf", pdf_bytes())

        submission = await self.registry.submit(file, self.config)
        artwork = submission.artwork

        self.assertEqual(artwork.validation_status, ArtworkStatus.VALID)
        self.assertEqual(artwork.stored_filename, "My_Card__final_.pdf")
        self.assertEqual(artwork.file_path, f"artwork/{artwork.id}/My_Card__final_.pdf")
        self.assertEqual(await self.registry.download(artwork.id), file.content)
        self.assertEqual(await self.registry.get(artwork.id), artwork)

    async def test_submit_low_resolution_image(self):
        file = CandidateFile("logo.png", "image/png", png_bytes(600, 300, dpi=72))

        artwork = (await self.registry.submit(file, self.config)).artwork

        self.assertEqual(artwork.validation_status, ArtworkStatus.NEEDS_REVIEW)
        self.assertEqual(artwork.dimensions, Dimensions(600, 300, 72))
        self.assertEqual(artwork.color_space, "RGB")
        self.assertIn("72 DPI", artwork.validation_notes)

        reviewed = await self.registry.review(artwork.id, ArtworkStatus.VALID, "customer accepted")
        self.assertEqual(reviewed.validation_status, ArtworkStatus.VALID)
        self.assertEqual(
            [a.id for a in await self.registry.list_artwork(ArtworkStatus.VALID)], [artwork.id]
        )

    async def test_submit_invalid_file_is_still_stored(self):
        file = CandidateFile("notes.txt", "text/plain", b"not artwork")

        submission = await self.registry.submit(file, self.config)

        self.assertEqual(submission.artwork.validation_status, ArtworkStatus.INVALID)
        self.assertFalse(submission.result.is_valid)
        rows = await self.gateway.query(ARTWORK_TABLE)
        self.assertEqual(rows[0]["validation_status"], "invalid")

    async def test_unknown_artwork(self):
        with self.assertRaises(GatewayError) as ctx:
            await self.registry.get("missing")
        self.assertEqual(ctx.exception.kind, GatewayErrorKind.NOT_FOUND)


if __name__ == "__main__":
    unittest.main()
