import bleach
from rest_framework import serializers


def _clean(v):
    return bleach.clean((v or '').strip(), tags=set(), strip=True)


class InteractionCheckSerializer(serializers.Serializer):
    medication_name = serializers.CharField(max_length=128)
    patient_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
    current_medications = serializers.ListField(child=serializers.CharField(max_length=128), required=False)
    allergies = serializers.ListField(child=serializers.CharField(max_length=128), required=False)

    def validate_medication_name(self, v):
        v = _clean(v)
        if not v:
            raise serializers.ValidationError('Medication name is required.')
        return v

    def validate(self, attrs):
        if not attrs.get('patient_id') and 'current_medications' not in attrs:
            raise serializers.ValidationError('Provide patient_id or current_medications.')
        for key in ('current_medications', 'allergies'):
            if key in attrs:
                attrs[key] = [c for c in (_clean(v) for v in attrs[key]) if c]
        return attrs


class MonitoringQuerySerializer(serializers.Serializer):
    patient_id = serializers.CharField(max_length=32, required=False, allow_blank=True)
