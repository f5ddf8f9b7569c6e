"""
Notifications App for TalentFlow.

Delivery channels used by automation actions:
- In-app notifications stored in the database
- Email through Django's mail framework
- SMS through an HTTP gateway

Usage:
    from notifications.services import email_service

    email_service.send(to='jane@example.com', subject='Hello', body='<p>Hi</p>')
"""
