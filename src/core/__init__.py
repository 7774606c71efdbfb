"""Core domain package for chatnotify.

Core contains line classification, rule evaluation and the notification
decision without any Telegram or delivery-specific code, keeping the
business logic portable.
"""
