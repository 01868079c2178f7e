"""
Clients for the third-party weather and exchange-rate services.
"""
