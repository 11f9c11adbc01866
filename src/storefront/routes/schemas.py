from marshmallow import Schema, fields, validate


class AddCartItemSchema(Schema):
    variant_id = fields.Int(required=True, strict=True)
    quantity = fields.Int(load_default=1, strict=True, validate=validate.Range(min=1, max=99))


class UpdateCartItemSchema(Schema):
    quantity = fields.Int(required=True, strict=True, validate=validate.Range(min=0, max=99))


class ApplyDiscountSchema(Schema):
    code = fields.Str(required=True, validate=validate.Length(min=1, max=50))


class AddressSchema(Schema):
    street = fields.Str(required=True, validate=validate.Length(min=1))
    city = fields.Str(required=True, validate=validate.Length(min=1))
    state = fields.Str(required=True, validate=validate.Length(min=1))
    zip_code = fields.Str(required=True, validate=validate.Length(min=1, max=20))
    country = fields.Str(required=True, validate=validate.Length(min=2))


class CheckoutSchema(Schema):
    shipping_address = fields.Nested(AddressSchema, required=True)
    billing_address = fields.Nested(AddressSchema, load_default=None)
    shipping_method_id = fields.Int(load_default=None, strict=True)
    payment_method = fields.Str(load_default="card", validate=validate.OneOf(["card", "paypal", "bank_transfer"]))


class ConfirmPaymentSchema(Schema):
    transaction_id = fields.Str(load_default=None, validate=validate.Length(min=1, max=100))
