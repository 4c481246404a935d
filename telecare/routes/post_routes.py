from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from telecare.auth.dependencies import get_current_profile, require_expert
from telecare.models.post import TherapistPost
from telecare.models.post_reaction import PostLike, PostSave
from telecare.models.profile import Profile
from telecare.routes.common import database_unavailable, get_db

router = APIRouter(tags=['posts'])

MAX_POST_LENGTH = 5000
MAX_TAGS = 10


class CreatePostRequest(BaseModel):
    content: str
    tags: list[str] = []

    @field_validator('content')
    @classmethod
    def validate_content(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Post content is required.')
        if len(normalized) > MAX_POST_LENGTH:
            raise ValueError(f'Posts must be {MAX_POST_LENGTH} characters or fewer.')
        return normalized

    @field_validator('tags')
    @classmethod
    def validate_tags(cls, value: list[str]) -> list[str]:
        tags: list[str] = []
        for tag in value:
            normalized = tag.strip().lstrip('#').lower()
            if normalized and normalized not in tags:
                tags.append(normalized)
        if len(tags) > MAX_TAGS:
            raise ValueError(f'A post can have at most {MAX_TAGS} tags.')
        return tags


class PostResponse(BaseModel):
    id: int
    author_id: int
    author_name: str | None = None
    author_role: str | None = None
    content: str
    tags: list[str]
    likes_count: int = 0
    liked: bool = False
    saved: bool = False
    created_at: datetime


def split_tags(value: str | None) -> list[str]:
    return [tag for tag in (value or '').split(',') if tag]


def to_post_response(
    post: TherapistPost,
    author: Profile | None,
    likes_count: int = 0,
    liked: bool = False,
    saved: bool = False,
) -> PostResponse:
    return PostResponse(
        id=post.id,
        author_id=post.author_id,
        author_name=author.full_name if author else None,
        author_role=author.role if author else None,
        content=post.content,
        tags=split_tags(post.tags),
        likes_count=likes_count,
        liked=liked,
        saved=saved,
        created_at=post.created_at,
    )


def get_post(post_id: int, db: Session) -> TherapistPost:
    post = db.query(TherapistPost).filter(TherapistPost.id == post_id).first()
    if post is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Post not found.')
    return post


def load_reactions(post_ids: list[int], user_id: int, db: Session) -> tuple[dict[int, int], set[int], set[int]]:
    """Return like counts per post plus the posts this user liked and saved."""
    if not post_ids:
        return {}, set(), set()

    counts = dict(
        db.query(PostLike.post_id, func.count(PostLike.id))
        .filter(PostLike.post_id.in_(post_ids))
        .group_by(PostLike.post_id)
        .all()
    )
    liked = {
        post_id for (post_id,) in db.query(PostLike.post_id).filter(
            PostLike.post_id.in_(post_ids),
            PostLike.user_id == user_id,
        ).all()
    }
    saved = {
        post_id for (post_id,) in db.query(PostSave.post_id).filter(
            PostSave.post_id.in_(post_ids),
            PostSave.user_id == user_id,
        ).all()
    }
    return counts, liked, saved


def build_post_response(post_id: int, profile: Profile, db: Session) -> PostResponse:
    post = get_post(post_id, db)
    author = db.query(Profile).filter(Profile.user_id == post.author_id).first()
    counts, liked, saved = load_reactions([post.id], profile.user_id, db)
    return to_post_response(post, author, counts.get(post.id, 0), post.id in liked, post.id in saved)


def toggle_reaction(model, post_id: int, profile: Profile, db: Session) -> PostResponse:
    try:
        get_post(post_id, db)
        existing = db.query(model).filter(model.post_id == post_id, model.user_id == profile.user_id).first()
        if existing is None:
            db.add(model(post_id=post_id, user_id=profile.user_id))
        else:
            db.delete(existing)
        db.commit()
        return build_post_response(post_id, profile, db)
    except IntegrityError:
        # A concurrent toggle already added the row.
        db.rollback()
        return build_post_response(post_id, profile, db)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc


@router.get('/', response_model=list[PostResponse])
def list_posts(
    author_id: int | None = Query(default=None),
    tag: str | None = Query(default=None),
    saved_only: bool = Query(default=False),
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    try:
        query = db.query(TherapistPost, Profile).outerjoin(Profile, Profile.user_id == TherapistPost.author_id)
        if author_id is not None:
            query = query.filter(TherapistPost.author_id == author_id)
        rows = query.order_by(TherapistPost.created_at.desc(), TherapistPost.id.desc()).all()
        counts, liked, saved = load_reactions([post.id for post, _ in rows], profile.user_id, db)
    except SQLAlchemyError as exc:
        raise database_unavailable(exc) from exc

    posts = [
        to_post_response(post, author, counts.get(post.id, 0), post.id in liked, post.id in saved)
        for post, author in rows
    ]
    if tag:
        wanted = tag.strip().lstrip('#').lower()
        posts = [post for post in posts if wanted in post.tags]
    if saved_only:
        posts = [post for post in posts if post.saved]
    return posts


@router.post('/', response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    data: CreatePostRequest,
    profile: Profile = Depends(require_expert),
    db: Session = Depends(get_db),
):
    post = TherapistPost(author_id=profile.user_id, content=data.content, tags=','.join(data.tags))
    try:
        db.add(post)
        db.commit()
        db.refresh(post)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc

    return to_post_response(post, profile)


@router.post('/{post_id}/like', response_model=PostResponse)
def toggle_post_like(
    post_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return toggle_reaction(PostLike, post_id, profile, db)


@router.post('/{post_id}/save', response_model=PostResponse)
def toggle_post_save(
    post_id: int,
    profile: Profile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    return toggle_reaction(PostSave, post_id, profile, db)


@router.delete('/{post_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    post_id: int,
    profile: Profile = Depends(require_expert),
    db: Session = Depends(get_db),
):
    try:
        post = get_post(post_id, db)
        if post.author_id != profile.user_id:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail='Only the author can delete this post.')

        db.query(PostLike).filter(PostLike.post_id == post_id).delete(synchronize_session=False)
        db.query(PostSave).filter(PostSave.post_id == post_id).delete(synchronize_session=False)
        db.delete(post)
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable(exc) from exc
