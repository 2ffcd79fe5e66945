from marshmallow import Schema, fields, validate

from models.schemas.user import AuthorSchema


_title = validate.Length(min=1, max=255)


class PostCreateSchema(Schema):
    title = fields.String(required=True, validate=_title)
    content = fields.String(allow_none=True, load_default=None)
    published = fields.Boolean(load_default=False)


class PostUpdateSchema(Schema):
    # All optional, but validate if present
    title = fields.String(validate=_title)
    content = fields.String(allow_none=True)
    published = fields.Boolean()


class PostOutSchema(Schema):
    id = fields.String()
    title = fields.String()
    content = fields.String(allow_none=True)
    published = fields.Boolean()
    author_id = fields.String(data_key="authorId")
    author = fields.Nested(AuthorSchema)
    created_at = fields.DateTime(data_key="createdAt")
    updated_at = fields.DateTime(data_key="updatedAt")
