import logging
from typing import List, Optional

from google.api_core.exceptions import GoogleAPIError

from .enums import NotificationType
from .errors import PermissionDeniedError
from .models import Comment, Post, UserSnapshot, created_at_key
from .notifications import notify
from .session import Session
from .uploads import ImageSource, ImageUploader

logger = logging.getLogger(__name__)


def newest_first(posts: List[Post]) -> List[Post]:
    return sorted(posts, key=created_at_key, reverse=True)


def _require_owner(session: Session, owner_id: str, what: str) -> str:
    uid = session.require_uid()
    if uid != owner_id:
        raise PermissionDeniedError(f"Only the author can change this {what}.")
    return uid


async def create_post(
    session: Session,
    image: ImageSource,
    caption: str,
    uploader: ImageUploader,
) -> Post:
    """Upload the image, then write the post with a snapshot of its owner."""
    uid = session.require_uid()
    image_url = await uploader.upload(image)

    owner = UserSnapshot(username=session.display_name)
    if session.user and session.user.photo_url:
        owner.photo_url = session.user.photo_url
    elif session.profile:
        owner.photo_url = session.profile.photo_url

    post = Post(user_id=uid, image_url=image_url, caption=caption, likes=[], user=owner)
    await post.save()
    logger.info(f"Created post {post.id} for {uid}")
    return post


async def toggle_like(session: Session, post: Post) -> bool:
    """
    Like or unlike ``post`` for the viewer and update ``post.likes`` locally.

    Returns the new liked state. Concurrent toggles are not arbitrated.
    """
    uid = session.require_uid()
    if uid in post.likes:
        await Post.array_remove(post.id, "likes", [uid])
        post.likes = [liker for liker in post.likes if liker != uid]
        return False
    await Post.array_union(post.id, "likes", [uid])
    post.likes = [*post.likes, uid]
    return True


async def edit_caption(session: Session, post: Post, caption: str) -> Post:
    _require_owner(session, post.user_id, "post")
    await Post.update_fields(post.id, {"caption": caption})
    post.caption = caption
    return post


async def delete_post(session: Session, post: Post) -> None:
    # Comments under the post are left in place.
    _require_owner(session, post.user_id, "post")
    await post.delete()
    logger.info(f"Deleted post {post.id}")


async def add_comment(session: Session, post: Post, text: str) -> Optional[Comment]:
    """Append a comment; blank text is ignored and returns None."""
    if not text.strip():
        return None
    uid = session.require_uid()
    comment = Comment(text=text, user_id=uid, username=session.display_name)
    await comment.save(parent=post)

    if post.user_id != uid:
        try:
            await notify(
                session,
                recipient_id=post.user_id,
                type=NotificationType.COMMENT,
                message=f"{session.display_name} commented on your post",
                post_id=post.id,
            )
        except GoogleAPIError:
            logger.exception(f"Could not notify {post.user_id} of comment on {post.id}")
    return comment


async def delete_comment(session: Session, post_id: str, comment: Comment) -> None:
    _require_owner(session, comment.user_id, "comment")
    await Comment.delete_by_id(comment.id, parent=Post.document_path_for(post_id))


async def list_comments(post_id: str) -> List[Comment]:
    return await Comment.find_all(
        parent=Post.document_path_for(post_id),
        order_by=str(Comment.created_at),
    )


async def list_user_posts(uid: str) -> List[Post]:
    # Equality filter plus ordering would need a composite index; sort here.
    posts = await Post.find_all(filters=[Post.user_id == uid])
    return newest_first(posts)


async def count_user_posts(uid: str) -> int:
    return await Post.count([Post.user_id == uid])
