"""
Notification Service
Push notifications for community activity and vehicle reminders via FCM.
"""
