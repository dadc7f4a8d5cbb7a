"""
HTTP-level tests for /api/comments: two-level threads and author-only deletes.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from lifetube.models.models import Comment


@pytest.fixture
def make_comment(session_factory):
    base = datetime(2024, 6, 1, tzinfo=timezone.utc)

    async def _make(video, author, text, minute, parent=None) -> Comment:
        comment = Comment(
            id=uuid.uuid4(),
            video_id=video.id,
            user_id=author.id,
            parent_id=parent.id if parent else None,
            text=text,
            created_at=base + timedelta(minutes=minute),
        )
        async with session_factory() as session:
            session.add(comment)
            await session.commit()
        return comment

    return _make


class TestAddComment:

    @pytest.mark.asyncio
    async def test_add_top_level(self, client, users, auth, make_video):
        video = await make_video(users["alice"])
        response = await client.post(
            "/api/comments", json={"videoId": str(video.id), "text": "  nice  "}, headers=auth(users["bob"]),
        )
        assert response.status_code == 201
        comment = response.json()["comment"]
        assert comment["text"] == "nice"
        assert comment["parent_id"] is None
        assert comment["users"]["username"] == "bob"

    @pytest.mark.asyncio
    async def test_missing_fields(self, client, users, auth, make_video):
        video = await make_video(users["alice"])
        for body in ({"text": "hi"}, {"videoId": str(video.id)}, {"videoId": str(video.id), "text": "   "}):
            response = await client.post("/api/comments", json=body, headers=auth(users["bob"]))
            assert response.status_code == 400
            assert response.json()["error"] == "Video ID and text are required"

    @pytest.mark.asyncio
    async def test_requires_token(self, client, users, make_video):
        video = await make_video(users["alice"])
        response = await client.post("/api/comments", json={"videoId": str(video.id), "text": "hi"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_video(self, client, users, auth):
        response = await client.post(
            "/api/comments", json={"videoId": str(uuid.uuid4()), "text": "hi"}, headers=auth(users["bob"]),
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_reply_to_reply_attaches_to_root(self, client, users, auth, make_video, make_comment):
        video = await make_video(users["alice"])
        root = await make_comment(video, users["alice"], "root", 1)
        reply = await make_comment(video, users["bob"], "reply", 2, parent=root)

        response = await client.post(
            "/api/comments",
            json={"videoId": str(video.id), "text": "deeper", "parentId": str(reply.id)},
            headers=auth(users["carol"]),
        )
        assert response.status_code == 201
        assert response.json()["comment"]["parent_id"] == str(root.id)

    @pytest.mark.asyncio
    async def test_parent_on_other_video_rejected(self, client, users, auth, make_video, make_comment):
        here = await make_video(users["alice"], title="here")
        there = await make_video(users["alice"], title="there")
        foreign = await make_comment(there, users["alice"], "elsewhere", 1)

        response = await client.post(
            "/api/comments",
            json={"videoId": str(here.id), "text": "hi", "parentId": str(foreign.id)},
            headers=auth(users["bob"]),
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Parent comment not found on this video"


class TestThreads:

    @pytest.mark.asyncio
    async def test_roots_newest_first_replies_oldest_first(self, client, users, make_video, make_comment):
        video = await make_video(users["alice"])
        first = await make_comment(video, users["alice"], "first", 1)
        second = await make_comment(video, users["bob"], "second", 2)
        await make_comment(video, users["carol"], "r2", 4, parent=first)
        await make_comment(video, users["bob"], "r1", 3, parent=first)

        response = await client.get(f"/api/comments/video/{video.id}")
        assert response.status_code == 200
        threads = response.json()["comments"]
        assert [t["text"] for t in threads] == ["second", "first"]
        assert threads[0]["replies"] == []
        assert [r["text"] for r in threads[1]["replies"]] == ["r1", "r2"]
        assert threads[1]["replies"][0]["users"]["username"] == "bob"
        assert threads[0]["id"] == str(second.id)

    @pytest.mark.asyncio
    async def test_no_comments(self, client, users, make_video):
        video = await make_video(users["alice"])
        response = await client.get(f"/api/comments/video/{video.id}")
        assert response.json() == {"comments": []}


class TestDeleteComment:

    @pytest.mark.asyncio
    async def test_non_author_forbidden(self, client, users, auth, make_video, make_comment, session_factory):
        video = await make_video(users["alice"])
        comment = await make_comment(video, users["bob"], "mine", 1)

        response = await client.delete(f"/api/comments/{comment.id}", headers=auth(users["alice"]))
        assert response.status_code == 403
        assert response.json() == {"error": "Unauthorized"}

        async with session_factory() as session:
            assert await session.get(Comment, comment.id) is not None

    @pytest.mark.asyncio
    async def test_author_delete_takes_replies(self, client, users, auth, make_video, make_comment, session_factory):
        video = await make_video(users["alice"])
        root = await make_comment(video, users["bob"], "root", 1)
        await make_comment(video, users["carol"], "reply", 2, parent=root)

        response = await client.delete(f"/api/comments/{root.id}", headers=auth(users["bob"]))
        assert response.status_code == 200
        assert response.json()["message"] == "Comment deleted successfully"

        async with session_factory() as session:
            remaining = (await session.execute(select(Comment).where(Comment.video_id == video.id))).scalars().all()
        assert remaining == []

    @pytest.mark.asyncio
    async def test_unknown_comment(self, client, users, auth):
        response = await client.delete(f"/api/comments/{uuid.uuid4()}", headers=auth(users["bob"]))
        assert response.status_code == 404
