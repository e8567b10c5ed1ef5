"""Private AI chat workspace: chats, notes and a per-user token ledger."""
