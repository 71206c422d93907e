# function_app.py
import logging

import azure.functions as func

# ---- Log visivel no Azure Log Stream ----
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from blueprints.bp_pautas import bp as pautas_bp

app = func.FunctionApp()
app.register_functions(pautas_bp)
