"""
Scheduling Domain

Delivery slot grid and availability:
- slots.py                 # Pure slot calculator (grid minus occupied)
- availability_service.py  # Store-backed lookup with a short-TTL cache
"""
