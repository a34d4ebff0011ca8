# giftcards_app/wsgi.py
# -*- coding: utf-8 -*-
from giftcards_app import create_app

app = create_app()
