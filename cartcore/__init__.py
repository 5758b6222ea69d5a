"""
Cart Core

Shopping cart engine:
- cart: line items, conditions, totals
- services.money: Decimal arithmetic and number formatting
- config: formatting and storage settings
- db: Redis client for cart persistence
"""
