from dreamic.db.session import init_db

if __name__ == "__main__":
    print("Creating preferences table...")
    init_db()
    print("Tables created.")
