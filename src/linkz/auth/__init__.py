"""
Simple Linkz auth — single-account password login with signed session cookies.

Provides bcrypt password hashing, opaque seven-day session tokens stored in
the data document, and HMAC-signed cookies.

Usage:
    from linkz.auth.service import AccountService
    from linkz.storage import DocumentStore

    accounts = AccountService(DocumentStore("data"))
    await accounts.create_account("admin", "longenough1")
    cookie = await accounts.login("admin", "longenough1")
    await accounts.is_authenticated(cookie)  # True
"""
