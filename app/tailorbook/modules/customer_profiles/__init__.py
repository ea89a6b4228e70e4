"""
Customer Profiles module.

- Customers CRUD with search (name / phone)
- Delete cascades to the measurement and to every photo (blob first, then row)
"""
