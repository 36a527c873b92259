import json
import os

SAMPLES_DIR = os.path.join(os.path.dirname(__file__), "samples")


def load_sample_data(filename):
    with open(os.path.join(SAMPLES_DIR, filename)) as f:
        return json.load(f)
