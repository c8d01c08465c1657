"""
Artwork — batch selection against one running total, then storage.

Run: python -m examples.artwork_example
"""

from printshop.files import (
    MB,
    ArtworkRegistry,
    CandidateFile,
    FileSelection,
    SelectionStatus,
    config_for,
)
from printshop.gateway import MemoryGateway
from examples._infra import banner, run


async def main() -> None:
    banner("Artwork Upload")

    config = config_for("business-cards")
    files = [
        CandidateFile("front.pdf", "application/pdf", b"%PDF-1.7\n" + b"0" * MB),
        CandidateFile("back.pdf", "application/pdf", b"not a pdf"),
        CandidateFile("setup.exe", "application/octet-stream", b"MZ\x90\x00"),
    ]

    selection = FileSelection(config)
    async for event in selection.select_files(files):
        if event.status is SelectionStatus.VALIDATING:
            continue
        print(f"  {event.name:<10} {event.status}")
        for error in event.result.errors:
            print(f"    ✗ {error.message}")

    registry = ArtworkRegistry(MemoryGateway())
    for file in selection.accepted:
        submission = await registry.submit(file, config)
        print(f"  stored {submission.artwork.file_path} ({submission.artwork.validation_status})")


if __name__ == "__main__":
    run(main)
