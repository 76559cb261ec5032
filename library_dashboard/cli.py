import argparse
import logging

from library_dashboard.core.config import configure_logging
from library_dashboard.core.database import Base, SessionLocal, engine
from library_dashboard.core.security import hash_password
from library_dashboard.models.models import Author, Book, User

logger = logging.getLogger("library_dashboard.cli")


def seed(db):
    """Idempotent sample data: two authors with a few books."""
    if db.query(Author).count() == 0:
        kleppmann = Author(name='Martin Kleppmann', bio='Researcher in distributed systems.')
        ramalho = Author(name='Luciano Ramalho', bio='Python developer and author.')
        db.add_all([kleppmann, ramalho])
        db.flush()
        db.add_all([
            Book(title='Designing Data-Intensive Applications', isbn='978-1449373320',
                 author_id=kleppmann.id, published_year=2017),
            Book(title='Fluent Python', isbn='978-1492056355',
                 author_id=ramalho.id, published_year=2022),
        ])
    db.commit()
    logger.info('Seeded sample data')


def create_user(db, email, password, full_name=""):
    email = email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise SystemExit(f"User {email} already exists")
    user = User(email=email, full_name=full_name.strip(), password_hash=hash_password(password))
    db.add(user)
    db.commit()
    logger.info(f"Created user id={user.id} email={user.email}")
    return user


def main(argv=None):
    parser = argparse.ArgumentParser(description='Library dashboard maintenance utilities')
    sub = parser.add_subparsers(dest='command', required=True)
    sub.add_parser('initdb', help='Create tables')
    sub.add_parser('seed', help='Seed sample authors and books')
    user_cmd = sub.add_parser('create-user', help='Create a staff account')
    user_cmd.add_argument('--email', required=True)
    user_cmd.add_argument('--password', required=True)
    user_cmd.add_argument('--full-name', default='')
    args = parser.parse_args(argv)

    configure_logging()
    Base.metadata.create_all(bind=engine)
    if args.command == 'initdb':
        logger.info('Database tables created')
        return
    db = SessionLocal()
    try:
        if args.command == 'seed':
            seed(db)
        elif args.command == 'create-user':
            create_user(db, args.email, args.password, args.full_name)
    finally:
        db.close()


if __name__ == '__main__':
    main()
