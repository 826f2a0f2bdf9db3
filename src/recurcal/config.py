import json
import logging
import os

DEFAULTS = {
    'db_path': None,                        # None = ~/.recurcal/recurcal.db
    'date_format': '%m/%d/%Y',
    'preview_count': 5,
    'split_series_on_future_edit': False,
    'log_level': 'INFO',
}


def _config_path():
    base = os.path.join(os.path.expanduser('~'), '.recurcal')
    os.makedirs(base, exist_ok=True)
    return os.path.join(base, 'recurcal_config.json')


def load_config():
    cfg = dict(DEFAULTS)
    path = _config_path()
    if not os.path.exists(path):
        return cfg
    try:
        with open(path, 'r', encoding='utf-8') as f:
            cfg.update(json.load(f))
    except (OSError, ValueError) as e:
        logging.warning(f"Konfiguration {path} nicht lesbar, verwende Standardwerte: {e}")
    return cfg


def save_config(cfg: dict):
    path = _config_path()
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(cfg, f, ensure_ascii=False, indent=2)
