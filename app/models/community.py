from app.extensions import db
from app.utils import utcnow, isoformat


class Post(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    content = db.Column(db.Text, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'))
    author_name = db.Column(db.String(150), nullable=False)
    color = db.Column(db.String(50), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    comments = db.relationship('Comment', backref='post', lazy='dynamic', cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'content': self.content,
            'author_id': self.author_id,
            'author_name': self.author_name,
            'color': self.color,
            'created_at': isoformat(self.created_at),
        }


class Comment(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    post_id = db.Column(db.Integer, db.ForeignKey('post.id', ondelete='CASCADE'), nullable=False, index=True)
    content = db.Column(db.Text, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'))
    author_name = db.Column(db.String(150), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'post_id': self.post_id,
            'content': self.content,
            'author_id': self.author_id,
            'author_name': self.author_name,
            'created_at': isoformat(self.created_at),
        }


class Document(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    filename = db.Column(db.String(255), nullable=False, unique=True)
    uploader_id = db.Column(db.Integer, db.ForeignKey('user.id', ondelete='SET NULL'))
    uploaded_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    @property
    def url(self):
        return f"/uploads/documents/{self.filename}"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'url': self.url,
            'uploader_id': self.uploader_id,
            'uploaded_at': isoformat(self.uploaded_at),
        }
