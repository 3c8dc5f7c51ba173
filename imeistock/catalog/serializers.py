from rest_framework import serializers
from .models import Brand, DeviceModel, Seller, BookingPerson


class BrandSerializer(serializers.ModelSerializer):
    class Meta:
        model = Brand
        fields = ['id', 'name', 'created_at', 'updated_at']


class DeviceModelSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeviceModel
        fields = ['id', 'name', 'brand', 'brand_name', 'created_at', 'updated_at']


class SellerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Seller
        fields = ['id', 'name', 'created_at', 'updated_at']


class BookingPersonSerializer(serializers.ModelSerializer):
    class Meta:
        model = BookingPerson
        fields = ['id', 'name', 'created_at', 'updated_at']


class ReferenceNameSerializer(serializers.Serializer):
    """Input for adding or renaming a reference row"""
    name = serializers.CharField(max_length=200, allow_blank=True)


class DeviceModelInputSerializer(ReferenceNameSerializer):
    """Models name their brand either by id or by name"""
    brand = serializers.IntegerField(required=False, allow_null=True)
    brand_name = serializers.CharField(max_length=200, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('brand') and not (attrs.get('brand_name') or '').strip():
            raise serializers.ValidationError({'brand': 'Please select a brand first.'})
        return attrs
