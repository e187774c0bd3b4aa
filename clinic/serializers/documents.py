from rest_framework import serializers

from .entities import CleanCharField, DateString, TemplateVariableSerializer


class DocumentDatesSerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
    issued_by = CleanCharField(max_length=128)
    issue_date = DateString()
    valid_from = DateString()
    valid_until = DateString()
    variables = serializers.DictField(child=CleanCharField(max_length=2000), required=False)

    def validate(self, attrs):
        if attrs.get('valid_from') and attrs.get('valid_until') and attrs['valid_from'] > attrs['valid_until']:
            raise serializers.ValidationError({'valid_until': 'Valid until must not be before valid from.'})
        return attrs


class RenderSerializer(DocumentDatesSerializer):
    template_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
    template_content = serializers.CharField(
        max_length=20000, required=False, allow_blank=True, trim_whitespace=False
    )
    template_variables = TemplateVariableSerializer(many=True, required=False)

    def validate(self, attrs):
        attrs = super().validate(attrs)
        if not attrs.get('template_id') and not attrs.get('template_content'):
            raise serializers.ValidationError('Provide template_id or template_content.')
        return attrs


class GenerateSerializer(DocumentDatesSerializer):
    template_id = serializers.CharField(max_length=32)
    patient_id = serializers.CharField(max_length=32)
    document_title = CleanCharField(max_length=255)
    notes = CleanCharField(max_length=2000)
