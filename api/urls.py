from django.urls import path
from valorizacao import views as valorizacao_views

# ------------------------------------------------------------------------------
# URL patterns
# ------------------------------------------------------------------------------
urlpatterns = [
    # Proxies OSM (Nominatim / Overpass)
    path("osm/search/", valorizacao_views.OsmSearchView.as_view(),
         name="osm-search"),
    path("osm/boundary/", valorizacao_views.OsmBoundaryView.as_view(),
         name="osm-boundary"),
    path("osm/roads/", valorizacao_views.OsmRoadsView.as_view(),
         name="osm-roads"),

    # Gradiente de valor
    path("valorizacao/boundary/", valorizacao_views.BoundaryView.as_view(),
         name="valorizacao-boundary"),
    path("valorizacao/buffer/", valorizacao_views.BufferView.as_view(),
         name="valorizacao-buffer"),
    path("valorizacao/closest-road/", valorizacao_views.ClosestRoadView.as_view(),
         name="valorizacao-closest-road"),
    path("valorizacao/grid/", valorizacao_views.GridView.as_view(),
         name="valorizacao-grid"),
    path("valorizacao/valuation/", valorizacao_views.ValuationView.as_view(),
         name="valorizacao-valuation"),
    path("valorizacao/gradiente/", valorizacao_views.GradientView.as_view(),
         name="valorizacao-gradiente"),
]
