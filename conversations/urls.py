from django.urls import path
from . import views

app_name = 'conversations'

urlpatterns = [
    path('', views.ConversationListView.as_view(), name='conversation-list'),
    path('images/', views.ChatImageUploadView.as_view(), name='image-upload'),
    path('unread-count/', views.UnreadCountView.as_view(), name='unread-count'),
    path('<uuid:conversation_id>/messages/', views.ConversationMessagesView.as_view(), name='conversation-messages'),
]
