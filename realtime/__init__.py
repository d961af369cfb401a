"""
Realtime package for channel-layer delivery events.

This package provides:
- Notification helpers that fan out dispatch events over the Django Channels
  layer to per-courier (partner_<id>) and per-order (order_<id>) groups

Usage:
    from realtime.notifications import notify_partners_of_offer, notify_partner_event, notify_order_event
"""
