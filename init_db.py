#!/usr/bin/env python3
import os
import json
import logging

from ping_pong_web import create_app, recalculate
from models import db, Player
from repository import SQLAlchemyRepository

logger = logging.getLogger(__name__)


def init_db(app):
    """Create the tables, seed players from players.json when empty and run a stats pass"""
    with app.app_context():
        db.create_all()

        if Player.query.first() is None:
            players_file = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'players.json')
            if os.path.exists(players_file):
                with open(players_file, 'r') as f:
                    names = json.load(f).get('players', [])
                for name in names:
                    db.session.add(Player(name=name))
                db.session.commit()
                logger.info(f"Seeded {len(names)} players from {players_file}")
            else:
                logger.info("No players.json found, starting with an empty league")
        else:
            logger.info("Database already contains data. No seeding needed.")

        recalculate(SQLAlchemyRepository(db.session))
        logger.info("Database initialized successfully!")


if __name__ == '__main__':
    init_db(create_app())
