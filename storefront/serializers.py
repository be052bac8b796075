import re

from rest_framework import serializers
from rest_framework.settings import api_settings

from storefront.domain import (
    CORE_CUSTOMER_FIELDS, DATE_PRESETS, InquiryStatus, PREDEFINED_CATEGORIES,
)
from storefront.bulk_actions import BULK_ACTIONS

PHONE_REGEX = r'^\+?[1-9]\d{0,15}$'
IMAGE_URL_REGEX = r'^https?://.+\..+'
NON_FIELD_ERRORS = api_settings.NON_FIELD_ERRORS_KEY


def flatten_errors(detail, prefix=''):
    """
    Flatten nested serializer errors into {dotted.path: first message}.

    {'offers': [{}, {'title': ['required']}]} becomes {'offers.1.title': 'required'}.
    """
    flat = {}
    if isinstance(detail, dict):
        for key, value in detail.items():
            if key == NON_FIELD_ERRORS:
                path = prefix or key
            else:
                path = f'{prefix}.{key}' if prefix else str(key)
            flat.update(flatten_errors(value, path))
    elif isinstance(detail, (list, tuple)):
        if detail and not any(isinstance(item, (dict, list, tuple)) for item in detail):
            flat.setdefault(prefix or NON_FIELD_ERRORS, str(detail[0]))
        else:
            for index, item in enumerate(detail):
                if item:
                    flat.update(flatten_errors(item, f'{prefix}.{index}' if prefix else str(index)))
    elif detail:
        flat.setdefault(prefix or NON_FIELD_ERRORS, str(detail))
    return flat


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(trim_whitespace=False)


class RegisterSerializer(serializers.Serializer):
    username = serializers.CharField(min_length=3, max_length=50, error_messages={
        'min_length': 'Username must be at least 3 characters',
    })
    email = serializers.EmailField(error_messages={'invalid': 'Please enter a valid email'})
    password = serializers.CharField(min_length=6, trim_whitespace=False, error_messages={
        'min_length': 'Password must be at least 6 characters',
    })
    confirmPassword = serializers.CharField(trim_whitespace=False)

    def validate(self, attrs):
        if attrs['password'] != attrs['confirmPassword']:
            raise serializers.ValidationError({'confirmPassword': 'Passwords do not match'})
        return attrs


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------

class DynamicFieldSerializer(serializers.Serializer):
    key = serializers.CharField(error_messages={'blank': 'Field key is required', 'required': 'Field key is required'})
    placeholder = serializers.CharField(error_messages={
        'blank': 'Placeholder is required', 'required': 'Placeholder is required',
    })


class PredefinedFieldSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=list(PREDEFINED_CATEGORIES))
    options = serializers.ListField(child=serializers.CharField(), required=False)
    selectedOptions = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    isActive = serializers.BooleanField(default=False)

    def validate(self, attrs):
        allowed = PREDEFINED_CATEGORIES[attrs['category']]
        unknown = [option for option in attrs.get('selectedOptions') or [] if option not in allowed]
        if unknown:
            raise serializers.ValidationError({'selectedOptions': f'Unknown options: {", ".join(unknown)}'})
        attrs['options'] = list(allowed)
        return attrs


class OfferSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=100, error_messages={
        'blank': 'Offer title is required', 'required': 'Offer title is required',
    })
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    discount = serializers.FloatField(min_value=0, max_value=100, required=False, allow_null=True, error_messages={
        'min_value': 'Discount cannot be negative',
        'max_value': 'Discount cannot exceed 100%%',
    })
    validUntil = serializers.DateTimeField(required=False, allow_null=True)
    isActive = serializers.BooleanField(default=True)


class HiddenFieldSerializer(serializers.Serializer):
    key = serializers.CharField(error_messages={'blank': 'Field key is required', 'required': 'Field key is required'})
    value = serializers.CharField(required=False, allow_blank=True, default='')
    description = serializers.CharField(required=False, allow_blank=True)


class ReferencesSerializer(serializers.Serializer):
    facebook = serializers.URLField(required=False, allow_blank=True)
    instagram = serializers.URLField(required=False, allow_blank=True)
    tiktok = serializers.URLField(required=False, allow_blank=True)


class ProductSerializer(serializers.Serializer):
    """Product payload accepted by the backend's create/update endpoints."""
    name = serializers.CharField(max_length=100, error_messages={
        'blank': 'Product name is required',
        'required': 'Product name is required',
        'max_length': 'Product name cannot exceed 100 characters',
    })
    price = serializers.FloatField(min_value=0, error_messages={
        'min_value': 'Price cannot be negative',
        'required': 'Price is required',
        'invalid': 'Price must be a number',
    })
    discountPrice = serializers.FloatField(min_value=0, required=False, allow_null=True, error_messages={
        'min_value': 'Discount price cannot be negative',
        'invalid': 'Discount price must be a number',
    })
    description = serializers.CharField(max_length=1000, error_messages={
        'blank': 'Product description is required',
        'required': 'Product description is required',
        'max_length': 'Description cannot exceed 1000 characters',
    })
    images = serializers.ListField(
        child=serializers.RegexField(IMAGE_URL_REGEX, error_messages={'invalid': 'Please enter a valid image URL'}),
        required=False,
        default=list,
    )
    dynamicFields = DynamicFieldSerializer(many=True, required=False, default=list)
    predefinedFields = PredefinedFieldSerializer(many=True, required=False, default=list)
    offers = OfferSerializer(many=True, required=False, default=list)
    hiddenFields = HiddenFieldSerializer(many=True, required=False, default=list)
    references = ReferencesSerializer(required=False)

    def validate(self, attrs):
        discount = attrs.get('discountPrice')
        if discount is not None and 'price' in attrs and discount >= attrs['price']:
            raise serializers.ValidationError({
                'discountPrice': 'Discount price must be lower than the regular price',
            })
        keys = [field['key'] for field in attrs.get('dynamicFields') or []]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise serializers.ValidationError({'dynamicFields': f'Duplicate field keys: {", ".join(duplicates)}'})
        return attrs


class ProductFilterSerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(required=False, allow_blank=True)
    minPrice = serializers.FloatField(required=False, min_value=0)
    maxPrice = serializers.FloatField(required=False, min_value=0)
    onSale = serializers.BooleanField(required=False, allow_null=True, default=None)
    hasOffers = serializers.BooleanField(required=False, allow_null=True, default=None)
    page = serializers.IntegerField(required=False, min_value=1, default=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100)


class BulkProductUpdateSerializer(serializers.Serializer):
    productIds = serializers.ListField(child=serializers.CharField(), allow_empty=False)
    updateData = serializers.DictField(allow_empty=False)


# ---------------------------------------------------------------------------
# Inquiries
# ---------------------------------------------------------------------------

class CustomerDataSerializer(serializers.Serializer):
    name = serializers.CharField(min_length=2, max_length=100, error_messages={
        'blank': 'Name is required',
        'required': 'Name is required',
        'min_length': 'Name must be at least 2 characters',
    })
    phone = serializers.RegexField(PHONE_REGEX, error_messages={
        'invalid': 'Please enter a valid phone number',
        'blank': 'Phone number is required',
        'required': 'Phone number is required',
    })
    reference = serializers.CharField(min_length=1, max_length=200, error_messages={
        'blank': 'Reference is required',
        'required': 'Reference is required',
    })

    def to_internal_value(self, data):
        validated = super().to_internal_value(data)
        extras = {}
        errors = {}
        for key, value in data.items():
            if key in CORE_CUSTOMER_FIELDS:
                continue
            if value is not None and not isinstance(value, (str, int, float)):
                errors[key] = 'Must be a text value'
                continue
            extras[key] = '' if value is None else str(value).strip()
        if errors:
            raise serializers.ValidationError(errors)
        validated['extra'] = extras
        return validated


class InquirySubmitSerializer(serializers.Serializer):
    customerData = CustomerDataSerializer()
    quantity = serializers.IntegerField(min_value=1, default=1, error_messages={
        'min_value': 'Quantity must be at least 1',
    })
    selectedVariants = serializers.DictField(child=serializers.CharField(), required=False, default=dict)


class InquiryFilterSerializer(serializers.Serializer):
    page = serializers.IntegerField(required=False, min_value=1)
    limit = serializers.IntegerField(required=False, min_value=1, max_value=100)
    status = serializers.ChoiceField(choices=InquiryStatus.choices, required=False, allow_blank=True)
    productId = serializers.CharField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True)
    name = serializers.CharField(required=False, allow_blank=True)
    startDate = serializers.DateField(required=False, allow_null=True)
    endDate = serializers.DateField(required=False, allow_null=True)
    preset = serializers.ChoiceField(choices=[key for key, _ in DATE_PRESETS], required=False, allow_blank=True)

    def validate(self, attrs):
        start, end = attrs.get('startDate'), attrs.get('endDate')
        if start and end and start > end:
            raise serializers.ValidationError({'endDate': 'End date must be after start date'})
        return attrs


class InquiryUpdateSerializer(serializers.Serializer):
    customerData = serializers.DictField(child=serializers.CharField(allow_blank=True), required=False)
    status = serializers.ChoiceField(choices=InquiryStatus.choices, required=False)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)

    def validate_customerData(self, value):
        phone = value.get('phone')
        if phone is not None and not re.match(PHONE_REGEX, phone.strip()):
            raise serializers.ValidationError({'phone': 'Please enter a valid phone number'})
        return {key: text.strip() for key, text in value.items()}

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Nothing to update')
        return attrs


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=InquiryStatus.choices)
    notes = serializers.CharField(max_length=1000, required=False, allow_blank=True)


class SelectionSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    action = serializers.ChoiceField(choices=BULK_ACTIONS, required=False, allow_blank=True, default='')


class DraftStartSerializer(serializers.Serializer):
    productId = serializers.CharField(required=False, allow_blank=True)
    clone = serializers.BooleanField(default=False)
    reference = serializers.CharField(required=False, allow_blank=True, max_length=200)


class DraftOperationSerializer(serializers.Serializer):
    op = serializers.ChoiceField(choices=['add', 'update', 'remove', 'toggle'])
    index = serializers.IntegerField(required=False, min_value=0)
    data = serializers.DictField(required=False, default=dict)

    def validate(self, attrs):
        if attrs['op'] in ('update', 'remove') and attrs.get('index') is None:
            raise serializers.ValidationError({'index': 'Index is required'})
        return attrs


IMAGE_CONTENT_TYPES = ('image/jpeg', 'image/png', 'image/webp', 'image/gif', 'image/svg+xml')
MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB


class ImageUploadSerializer(serializers.Serializer):
    """An image for the draft's images tab; ``index`` replaces that slot instead of appending."""
    image = serializers.FileField(error_messages={'required': 'No image file provided'})
    index = serializers.IntegerField(required=False, min_value=0)

    def validate_image(self, value):
        if getattr(value, 'content_type', None) not in IMAGE_CONTENT_TYPES:
            raise serializers.ValidationError('Please select a valid image file (JPEG, PNG, WEBP, GIF, SVG)')
        if value.size > MAX_IMAGE_SIZE:
            raise serializers.ValidationError('Image size must be less than 5MB')
        return value
