from django.urls import path
from . import views

urlpatterns = [
    # Song checks (participant adds a song to their batch)
    path("submissions/check-song/<str:link_id>/", views.check_song),
    path("submissions/compare-songs/<str:link_id>/", views.compare_songs),

    # Batch submission
    path("submissions/<str:link_id>/", views.submit_songs),
]
