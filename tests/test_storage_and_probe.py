"""
Storage backends, the ffprobe/ffmpeg wrapper and bearer-token decoding.
"""
import uuid

import pytest

from lifetube.core.errors import NotAuthorized
from lifetube.core.security import create_access_token, decode_access_token
from lifetube.services.media.media_probe import MediaProbe, ProbeError
from lifetube.services.storage.storage_service import LocalStorage, S3Storage


class RecordingS3Client:
    def __init__(self):
        self.uploads = []
        self.deleted = []

    def upload_file(self, filename, bucket, key, ExtraArgs=None):
        self.uploads.append((filename, bucket, key, ExtraArgs))

    def delete_object(self, Bucket, Key):
        self.deleted.append((Bucket, Key))


class TestLocalStorage:

    @pytest.mark.asyncio
    async def test_save_and_delete(self, tmp_path):
        storage = LocalStorage(tmp_path / "uploads")
        src = tmp_path / "clip.mp4"
        src.write_bytes(b"abc")

        url = await storage.save(src, "videos", "clip-1.mp4", "video/mp4")
        assert url == "/uploads/videos/clip-1.mp4"
        assert (tmp_path / "uploads" / "videos" / "clip-1.mp4").read_bytes() == b"abc"

        assert await storage.delete(url) is True
        assert not (tmp_path / "uploads" / "videos" / "clip-1.mp4").exists()

    @pytest.mark.asyncio
    async def test_foreign_urls_are_left_alone(self, tmp_path):
        storage = LocalStorage(tmp_path / "uploads")
        assert storage.owns("https://via.placeholder.com/640x360") is False
        assert storage.owns(None) is False
        assert await storage.delete("https://via.placeholder.com/640x360") is False

    def test_path_escape_rejected(self, tmp_path):
        storage = LocalStorage(tmp_path / "uploads")
        with pytest.raises(ValueError):
            storage.path_for("/uploads/../../etc/passwd")


class TestS3Storage:

    @pytest.mark.asyncio
    async def test_save_returns_public_url(self, tmp_path):
        client = RecordingS3Client()
        storage = S3Storage(client, "lifetube", "http://minio:9000/lifetube/")
        src = tmp_path / "t.png"
        src.write_bytes(b"png")

        url = await storage.save(src, "thumbnails", "t.png", "image/png")
        assert url == "http://minio:9000/lifetube/thumbnails/t.png"
        assert client.uploads == [(str(src), "lifetube", "thumbnails/t.png", {"ContentType": "image/png"})]

    @pytest.mark.asyncio
    async def test_delete_maps_url_to_key(self):
        client = RecordingS3Client()
        storage = S3Storage(client, "lifetube", "http://minio:9000/lifetube")
        assert await storage.delete("http://minio:9000/lifetube/videos/v.mp4") is True
        assert await storage.delete("/uploads/videos/v.mp4") is False
        assert client.deleted == [("lifetube", "videos/v.mp4")]


class TestMediaProbe:
    """Missing binaries exercise the failure paths without ffmpeg installed"""

    @pytest.mark.asyncio
    async def test_duration_defaults_to_zero(self, tmp_path):
        probe = MediaProbe(ffprobe=str(tmp_path / "no-ffprobe"), ffmpeg=str(tmp_path / "no-ffmpeg"))
        video = tmp_path / "v.mp4"
        video.write_bytes(b"not really a video")
        assert await probe.probe_duration(video) == 0

    @pytest.mark.asyncio
    async def test_frame_extraction_raises_probe_error(self, tmp_path):
        probe = MediaProbe(ffprobe=str(tmp_path / "no-ffprobe"), ffmpeg=str(tmp_path / "no-ffmpeg"))
        with pytest.raises(ProbeError):
            await probe.extract_frame(tmp_path / "v.mp4", tmp_path / "out.png")


class TestTokens:

    def test_round_trip_user_id(self):
        user_id = uuid.uuid4()
        assert decode_access_token(create_access_token(user_id)).id == user_id

    def test_expired_token_rejected(self):
        token = create_access_token(uuid.uuid4(), expires_minutes=-5)
        with pytest.raises(NotAuthorized, match="Invalid or expired token"):
            decode_access_token(token)

    def test_garbage_rejected(self):
        with pytest.raises(NotAuthorized):
            decode_access_token("abc.def.ghi")
