# hop_pipeline/pipeline/__init__.py

# This file makes the step functions directly available from the 'pipeline' package.
from .steps import step_1_scrape_hops, step_2_normalize, step_3_load_database
