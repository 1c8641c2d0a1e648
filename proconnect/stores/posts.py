"""Posts store: the feed."""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Set

from proconnect.errors import ProConnectError, ValidationFailedError
from proconnect.schemas.post import ImageUpload, Post
from proconnect.services.records import parse_record, parse_records
from proconnect.services.supabase_client import SupabaseClient
from proconnect.stores.base import BaseStore, find_by_id, replace_by_id, upsert, without_id
from proconnect.stores.session import SessionStore

logger = logging.getLogger(__name__)

POSTS_TABLE = "posts"
LIKES_TABLE = "post_likes"


class PostsStore(BaseStore):
    name = "posts"
    state_fields = ("posts",)

    def __init__(self, remote: SupabaseClient, session: SessionStore, posts_bucket: str = "posts"):
        super().__init__(remote)
        self.session = session
        self.posts_bucket = posts_bucket
        self.posts: List[Post] = []

    def get_post(self, post_id: str) -> Optional[Post]:
        return find_by_id(self.posts, post_id)

    async def _liked_post_ids(self) -> Set[str]:
        viewer_id = self.session.account_id
        if viewer_id is None:
            return set()
        rows = await self.remote.query(LIKES_TABLE, {"user_id": viewer_id})
        return {str(row.get("post_id")) for row in rows}

    async def fetch_posts(self) -> bool:
        """Replace the feed with every post, newest first, flagging the viewer's likes."""
        async def load() -> List[Post]:
            rows = await self.remote.query(POSTS_TABLE, order="created_at.desc")
            posts = parse_records(Post, rows)
            liked = await self._liked_post_ids()
            return [post.model_copy(update={"liked_by_me": post.id in liked}) for post in posts]

        return await self._load("fetching posts", load, "posts")

    async def like_post(self, post_id: str) -> bool:
        """
        Toggle the viewer's like; flag and counter always move together.

        Likes live in their own table keyed by post and viewer. The stored
        counter is maintained by the backend, so only the local copy is
        adjusted here.
        """
        original = self.get_post(post_id)
        if original is None:
            return False
        try:
            viewer = self.session.require_account()
        except ProConnectError as e:
            self._fail("liking the post", e)
            return False

        liked = not original.liked_by_me
        toggled = original.model_copy(update={
            "liked_by_me": liked,
            "likes_count": original.likes_count + (1 if liked else -1),
        })

        def revert() -> None:
            if self.get_post(post_id) is not None:
                self._set(posts=replace_by_id(self.posts, original))

        like = {"post_id": post_id, "user_id": viewer.id}

        async def send() -> None:
            if liked:
                await self.remote.insert(LIKES_TABLE, like)
            else:
                await self.remote.delete_where(LIKES_TABLE, like)

        return await self._mutate(
            "liking the post",
            send,
            apply=lambda: self._set(posts=replace_by_id(self.posts, toggled)),
            compensate=revert,
        )

    async def create_post(self, content: str, image: Optional[ImageUpload] = None) -> Optional[Post]:
        """
        Publish a post, uploading its image first when there is one.

        Returns:
            The stored post (also prepended to the feed), or None with `error` set
        """
        if not content.strip() and image is None:
            self._fail("creating the post", ValidationFailedError("Please add some text or an image to your post"))
            return None

        self._set(is_loading=True, error=None)
        try:
            account = self.session.require_account()
            image_url = None
            if image is not None:
                name = image.object_name(account.id, "post")
                image_url = await self.remote.upload_object(self.posts_bucket, name, image.data, image.content_type)

            row = await self.remote.insert(POSTS_TABLE, {
                "user_id": account.id,
                "content": content,
                "image_url": image_url,
                "likes_count": 0,
                "comments_count": 0,
                "created_at": datetime.now(timezone.utc).isoformat(),
            })
            post = parse_record(Post, row)
        except ProConnectError as e:
            self._fail("creating the post", e, is_loading=False)
            return None

        self._set(posts=upsert(self.posts, post, at_start=True), is_loading=False)
        logger.info(f"Created post {post.id}")
        return post

    async def delete_post(self, post_id: str) -> bool:
        """Drop the post locally right away; refetch the feed if the backend refuses."""
        return await self._mutate(
            "deleting the post",
            lambda: self.remote.delete(POSTS_TABLE, post_id),
            apply=lambda: self._set(posts=without_id(self.posts, post_id)),
            compensate=self.fetch_posts,
        )
