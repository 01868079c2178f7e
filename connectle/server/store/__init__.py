"""
Entity store: users, broadcast messages, private messages and contacts.
"""
