"""
Measurements module: one profile per customer plus the text summary used in WhatsApp messages.
"""
