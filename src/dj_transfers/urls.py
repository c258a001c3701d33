from django.urls import path

from . import views

app_name = "dj_transfers"

urlpatterns = [
    path("fees/<str:transfer_type>/", views.fee_quote, name="fee_quote"),
    path("review/", views.review_transfer, name="review_transfer"),
    path("transfers/", views.create_transfer, name="create_transfer"),
]
