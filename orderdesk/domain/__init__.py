"""Domain packages: scheduling, orders, drivers"""
