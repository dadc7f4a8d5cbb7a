"""
Upload receipt helpers: naming, tag parsing, allow-lists and size caps.
"""
import io
import re

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from lifetube.core.config import get_settings
from lifetube.core.errors import PayloadTooLarge, ValidationFailed
from lifetube.services.media.uploads import (
    check_allowed,
    file_extension,
    parse_tags,
    spool_upload,
    unique_filename,
)

settings = get_settings()


def make_upload(filename: str, content_type: str, data: bytes = b"data") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(data),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class TestNaming:

    def test_unique_filename_shape(self):
        name = unique_filename("video", ".mp4")
        assert re.fullmatch(r"video-\d+-\d+\.mp4", name)

    def test_unique_filename_differs_between_calls(self):
        names = {unique_filename("thumb", ".png") for _ in range(50)}
        assert len(names) == 50

    def test_file_extension_lowercases(self):
        assert file_extension("Holiday.MP4") == ".mp4"
        assert file_extension("noext") == ""
        assert file_extension(None) == ""


class TestParseTags:

    def test_trims_and_drops_empties(self):
        assert parse_tags(" travel, ,food ,, vlog ") == ["travel", "food", "vlog"]

    def test_missing_tags(self):
        assert parse_tags(None) == []
        assert parse_tags("") == []


class TestAllowLists:
    """Both the extension and the declared media type must match"""

    def test_accepts_known_video(self):
        upload = make_upload("clip.mp4", "video/mp4")
        assert check_allowed(upload, settings.video_types, "nope") == ".mp4"

    def test_accepts_alternate_avi_type(self):
        upload = make_upload("clip.AVI", "video/avi")
        assert check_allowed(upload, settings.video_types, "nope") == ".avi"

    def test_rejects_mismatched_media_type(self):
        upload = make_upload("clip.mp4", "image/png")
        with pytest.raises(ValidationFailed, match="Only video files are allowed!"):
            check_allowed(upload, settings.video_types, "Only video files are allowed!")

    def test_rejects_unknown_extension(self):
        upload = make_upload("setup.exe", "video/mp4")
        with pytest.raises(ValidationFailed):
            check_allowed(upload, settings.video_types, "Only video files are allowed!")

    def test_image_allow_list(self):
        assert check_allowed(make_upload("a.jpg", "image/jpeg"), settings.image_types, "x") == ".jpg"
        with pytest.raises(ValidationFailed):
            check_allowed(make_upload("a.jpg", "video/mp4"), settings.image_types, "x")


class TestSpoolUpload:

    @pytest.mark.asyncio
    async def test_writes_all_bytes(self, tmp_path):
        dest = tmp_path / "out.mp4"
        written = await spool_upload(make_upload("a.mp4", "video/mp4", b"x" * 1000), dest, 2000)
        assert written == 1000
        assert dest.read_bytes() == b"x" * 1000

    @pytest.mark.asyncio
    async def test_over_limit_raises_and_removes_partial_file(self, tmp_path):
        dest = tmp_path / "out.mp4"
        with pytest.raises(PayloadTooLarge, match="Maximum size is 1 KB"):
            await spool_upload(make_upload("a.mp4", "video/mp4", b"x" * 1000), dest, 10)
        assert not dest.exists()
