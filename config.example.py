# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets. Use .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TODO_APP_NAME": "App display name (default: todo-sync).",
    "TODO_LOG_LEVEL": "Console logging level (default: INFO).",
    "TODO_DATA_DIR": "Local data directory for logs (default: .local/todo_sync).",
    # Supabase project
    "TODO_SUPABASE_URL": "Project URL (fallback: SUPABASE_URL).",
    "TODO_SUPABASE_KEY": "Anon/public API key (fallback: SUPABASE_ANON_KEY, SUPABASE_KEY).",
    # Console sign-in
    "TODO_USER_EMAIL": "Email used to sign in when there is no stored session.",
    "TODO_USER_PASSWORD": "Password used to sign in when there is no stored session.",
    # Remote resources
    "TODO_TASK_TABLE": "Table holding todos (default: Todo).",
    "TODO_DB_SCHEMA": "Schema of the todo table for realtime (default: public).",
    "TODO_ATTACHMENT_BUCKET": "Storage bucket for todo images (default: todo-images).",
    "TODO_REALTIME_CHANNEL": "Realtime channel name (default: todos-changes).",
    # Attachments
    "TODO_SIGNED_URL_TTL_SECONDS": "Validity of signed image links (default: 3600).",
    "TODO_MAX_ATTACHMENT_BYTES": "Largest accepted image in bytes (default: 5 MiB).",
    "TODO_UPLOAD_CACHE_CONTROL": "Cache-Control max-age sent with uploads (default: 3600).",
}
