from django.conf import settings
from rest_framework import serializers

from .geo.valuation import MODES


def _default_road_types():
    return list(settings.VALORIZACAO_ROAD_TYPES)


class BoundaryRequestSerializer(serializers.Serializer):
    # Feature/Geometry (Polygon ou MultiPolygon) ou o caminho desenhado no mapa
    geometry = serializers.JSONField(required=False, allow_null=True, default=None)
    path = serializers.ListField(
        child=serializers.JSONField(), required=False, allow_null=True, default=None)
    search_result = serializers.JSONField(required=False, allow_null=True, default=None)

    def validate(self, attrs):
        if not (attrs.get("geometry") or attrs.get("path") or attrs.get("search_result")):
            raise serializers.ValidationError(
                "Informe geometry, path ou search_result.")
        return attrs


class BufferRequestSerializer(serializers.Serializer):
    boundary = serializers.JSONField()
    radius_m = serializers.FloatField(required=False, min_value=0.0)


class RoadsRequestSerializer(serializers.Serializer):
    bbox = serializers.ListField(
        child=serializers.FloatField(), min_length=4, max_length=4)
    types = serializers.ListField(
        child=serializers.CharField(), required=False, default=_default_road_types)

    def validate_types(self, value):
        if not value:
            raise serializers.ValidationError("Informe ao menos um tipo de via.")
        return value


class ClosestRoadRequestSerializer(serializers.Serializer):
    boundary = serializers.JSONField()
    roads = serializers.JSONField()


class GridRequestSerializer(serializers.Serializer):
    boundary = serializers.JSONField()
    cell_size_m = serializers.FloatField(required=False)

    def validate_cell_size_m(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("cell_size_m deve ser > 0.")
        return value


class ValuationRequestSerializer(serializers.Serializer):
    cells = serializers.JSONField()
    road = serializers.JSONField()
    mode = serializers.ChoiceField(choices=MODES, default="linear")
    decay_k = serializers.FloatField(required=False)
    max_distance_m = serializers.FloatField(required=False, allow_null=True, default=None)


class GradientRequestSerializer(serializers.Serializer):
    boundary = serializers.JSONField()
    roads = serializers.JSONField()
    cell_size_m = serializers.FloatField(required=False)
    buffer_m = serializers.FloatField(required=False, min_value=0.0)
    mode = serializers.ChoiceField(choices=MODES, default="linear")
    decay_k = serializers.FloatField(required=False)
    max_distance_m = serializers.FloatField(required=False, allow_null=True, default=None)

    def validate_cell_size_m(self, value):
        if value is not None and value <= 0:
            raise serializers.ValidationError("cell_size_m deve ser > 0.")
        return value
