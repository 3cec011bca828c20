import json
import logging
import os
import pickle
import random
from typing import Dict, List

import numpy as np
import torch
import yaml


def set_seed(seed: int):
    """Set random seeds for reproducibility"""
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    if torch.cuda.is_available():
        torch.cuda.manual_seed_all(seed)


def setup_logging(log_dir: str, experiment_name: str, level: str = 'INFO') -> logging.Logger:
    """Setup logging configuration"""
    os.makedirs(log_dir, exist_ok=True)

    log_file = os.path.join(log_dir, f"{experiment_name}.log")

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file),
            logging.StreamHandler()
        ],
        force=True
    )

    logger = logging.getLogger(experiment_name)
    return logger


def log_hyperparameters(logger: logging.Logger, config: Dict):
    """Log hyperparameters"""
    logger.info("🔧 Hyperparameters:")
    for key, value in config.items():
        logger.info(f"  {key}: {value}")


def save_config(config: Dict, filepath: str):
    """Save configuration to a YAML or JSON file"""
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, 'w') as f:
        if filepath.endswith(('.yaml', '.yml')):
            yaml.safe_dump(config, f, sort_keys=False)
        else:
            json.dump(config, f, indent=2)


def load_config(filepath: str) -> Dict:
    """Load configuration from a YAML or JSON file"""
    with open(filepath, 'r') as f:
        if filepath.endswith(('.yaml', '.yml')):
            config = yaml.safe_load(f)
        else:
            config = json.load(f)
    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration file {filepath} must contain a mapping")
    return config


def save_results(results: Dict, filepath: str):
    """Save results to pickle file"""
    directory = os.path.dirname(filepath)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(filepath, 'wb') as f:
        pickle.dump(results, f)


def load_results(filepath: str) -> Dict:
    """Load results from pickle file"""
    with open(filepath, 'rb') as f:
        return pickle.load(f)


def moving_average(data: List[float], window: int) -> List[float]:
    """Compute moving average"""
    if len(data) < window:
        return data

    averaged = []
    for i in range(len(data)):
        start_idx = max(0, i - window + 1)
        averaged.append(float(np.mean(data[start_idx:i + 1])))

    return averaged
