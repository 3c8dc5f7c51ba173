from django.urls import path
from .views import (
    brand_list_create, brand_detail,
    model_list_create, model_detail,
    seller_list_create, seller_detail,
    booking_person_list_create, booking_person_detail,
    reference_data,
)

urlpatterns = [
    path('brands/', brand_list_create, name='brand-list-create'),
    path('brands/<int:pk>/', brand_detail, name='brand-detail'),
    path('models/', model_list_create, name='model-list-create'),
    path('models/<int:pk>/', model_detail, name='model-detail'),
    path('sellers/', seller_list_create, name='seller-list-create'),
    path('sellers/<int:pk>/', seller_detail, name='seller-detail'),
    path('booking-persons/', booking_person_list_create, name='booking-person-list-create'),
    path('booking-persons/<int:pk>/', booking_person_detail, name='booking-person-detail'),
    path('reference-data/', reference_data, name='reference-data'),
]
