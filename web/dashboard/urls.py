from django.urls import path
from . import views
urlpatterns = [
    path("api/trends/", views.api_trends, name="api_trends"),
    path("api/trends/refresh/", views.api_trends_refresh, name="api_trends_refresh"),
]
