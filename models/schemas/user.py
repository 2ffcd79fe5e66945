from marshmallow import Schema, fields, pre_load, validate


def _norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


class _EmailNormalizingSchema(Schema):
    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data)
            data["email"] = _norm_email(data["email"])
        return data


class UserCreateSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)
    password = fields.String(
        required=True,
        load_only=True,
        validate=validate.Length(min=8, error="Password must be at least 8 characters long."),
    )
    name = fields.String(allow_none=True, load_default=None)


class UserLoginSchema(_EmailNormalizingSchema):
    email = fields.Email(required=True)
    password = fields.String(
        required=True,
        load_only=True,
        validate=validate.Length(min=1, error="Password is required."),
    )


class UserSummarySchema(Schema):
    """Non-sensitive fields returned with a login."""
    id = fields.String()
    email = fields.String()
    name = fields.String(allow_none=True)


class UserOutSchema(UserSummarySchema):
    created_at = fields.DateTime(data_key="createdAt")


class AuthorSchema(Schema):
    name = fields.String(allow_none=True)
    email = fields.String()
