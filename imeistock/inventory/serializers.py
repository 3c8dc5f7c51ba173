from rest_framework import serializers
from .models import Entry

DATE_INPUT_FORMATS = ['%d/%m/%Y', 'iso-8601']


class EntrySerializer(serializers.ModelSerializer):
    brand = serializers.CharField(source='brand.name', read_only=True, allow_null=True)
    model = serializers.CharField(source='model.name', read_only=True, allow_null=True)
    seller = serializers.CharField(source='seller.name', read_only=True, allow_null=True)
    booking_person = serializers.CharField(source='booking_person.name', read_only=True, allow_null=True)
    status = serializers.CharField(read_only=True, allow_null=True)
    owner = serializers.CharField(source='user.username', read_only=True, allow_null=True)

    class Meta:
        model = Entry
        fields = ['id', 'imei', 'brand', 'model', 'seller', 'booking_person', 'buyer',
                  'inward_date', 'inward_amount', 'outward_date', 'outward_amount',
                  'status', 'user', 'owner', 'created_at', 'updated_at']
        read_only_fields = fields


class EntryInputSerializer(serializers.Serializer):
    """Entry as typed into the entry form, references given by name"""
    imei = serializers.CharField(max_length=32, allow_blank=True)
    brand = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True, default='')
    model = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True, default='')
    seller = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True, default='')
    booking_person = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True, default='')
    buyer = serializers.CharField(max_length=200, required=False, allow_blank=True, allow_null=True, default='')
    inward_date = serializers.DateField(input_formats=DATE_INPUT_FORMATS, required=False, allow_null=True, default=None)
    inward_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, default=None)
    outward_date = serializers.DateField(input_formats=DATE_INPUT_FORMATS, required=False, allow_null=True, default=None)
    outward_amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, default=None)

    def validate_imei(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('IMEI is required.')
        return value


class BulkEntrySerializer(serializers.Serializer):
    entries = serializers.ListField(child=serializers.DictField(), allow_empty=True)


class CSVImportSerializer(serializers.Serializer):
    file = serializers.FileField()


class ImeiExtractSerializer(serializers.Serializer):
    text = serializers.CharField(allow_blank=True, trim_whitespace=False)


class AssignOrphanDataSerializer(serializers.Serializer):
    user = serializers.IntegerField(required=False, allow_null=True)
