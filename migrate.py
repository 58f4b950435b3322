import sqlite3
import sys

def migrate(db_path='evolution.db'):
    conn = sqlite3.connect(db_path)
    cur = conn.cursor()
    cur.execute("PRAGMA table_info(users);")
    cols = [r[1] for r in cur.fetchall()]
    if cols and 'photo_url' not in cols:
        cur.execute("ALTER TABLE users ADD COLUMN photo_url TEXT;")
    cur.execute("PRAGMA table_info(exercises);")
    cols = [r[1] for r in cur.fetchall()]
    if cols and 'avg_volume' not in cols:
        cur.execute("ALTER TABLE exercises ADD COLUMN avg_volume REAL NOT NULL DEFAULT 0;")
    if cols and 'progress' not in cols:
        cur.execute("ALTER TABLE exercises ADD COLUMN progress INTEGER NOT NULL DEFAULT 60;")
    if cols and 'created_at' not in cols:
        cur.execute("ALTER TABLE exercises ADD COLUMN created_at TEXT NOT NULL DEFAULT '';")
    cur.execute("PRAGMA table_info(weight_logs);")
    cols = [r[1] for r in cur.fetchall()]
    if cols and 'logged_at' not in cols:
        cur.execute("ALTER TABLE weight_logs ADD COLUMN logged_at TEXT NOT NULL DEFAULT '';")
    cur.execute("PRAGMA table_info(goals);")
    if not cur.fetchall():
        cur.execute(
            "CREATE TABLE goals (id TEXT PRIMARY KEY, user_id TEXT NOT NULL, title TEXT NOT NULL, description TEXT NOT NULL, created_at TEXT NOT NULL);"
        )
    conn.commit()
    conn.close()

if __name__ == '__main__':
    path = sys.argv[1] if len(sys.argv) > 1 else 'evolution.db'
    migrate(path)
