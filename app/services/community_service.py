import random

from app.extensions import db
from app.models.community import Post, Comment, Document
from app.services.errors import NotFound, ValidationError, PermissionDenied
from app.services.storage_service import save_document, delete_document_file
from app.services.validation_service import session_management, log_event
from app.utils import utcnow

POST_COLORS = (
    'bg-sky-100', 'bg-emerald-100', 'bg-amber-100', 'bg-rose-100', 'bg-violet-100', 'bg-stone-100',
)


def _require_content(content, field='content'):
    content = (content or '').strip()
    if not content:
        raise ValidationError('Invalid input.', errors={field: ['Content cannot be empty.']})
    return content


def get_post(post_id):
    post = db.session.get(Post, post_id)
    if post is None:
        raise NotFound('Post not found.')
    return post


def list_posts():
    return Post.query.order_by(Post.created_at.desc()).all()


def create_post(actor, content, color=None, now=None):
    content = _require_content(content)
    with session_management():
        post = Post(
            content=content,
            author_id=actor.id,
            author_name=actor.name,
            color=color or random.choice(POST_COLORS),
            created_at=now or utcnow(),
        )
        db.session.add(post)
    return post


def list_comments(post_id):
    post = get_post(post_id)
    return post.comments.order_by(Comment.created_at.asc()).all()


def add_comment(actor, post_id, content, now=None):
    content = _require_content(content)
    with session_management():
        post = get_post(post_id)
        comment = Comment(
            post_id=post.id,
            content=content,
            author_id=actor.id,
            author_name=actor.name,
            created_at=now or utcnow(),
        )
        db.session.add(comment)
    return comment


def list_documents():
    return Document.query.order_by(Document.uploaded_at.desc()).all()


def upload_document(actor, file_storage, now=None, ip_address=None):
    name, stored = save_document(file_storage)
    try:
        with session_management():
            document = Document(name=name, filename=stored, uploader_id=actor.id, uploaded_at=now or utcnow())
            db.session.add(document)
            db.session.flush()
            document_id = document.id
    except Exception:
        delete_document_file(stored)
        raise
    log_event('Document Uploaded', 'SUCCESS', {'document_id': document_id, 'name': name},
              user_id=actor.id, ip_address=ip_address)
    return document


def delete_document(actor, document_id, ip_address=None):
    """Uploader or admin only; removes both the record and the stored file."""
    with session_management():
        document = db.session.get(Document, document_id)
        if document is None:
            raise NotFound('Document not found.')
        if document.uploader_id != actor.id and not actor.is_admin:
            raise PermissionDenied('Only the uploader or an administrator may delete this document.')
        filename = document.filename
        db.session.delete(document)
    delete_document_file(filename)
    log_event('Document Deleted', 'SUCCESS', {'document_id': document_id},
              user_id=actor.id, ip_address=ip_address)
