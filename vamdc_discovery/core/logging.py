"""
Logging configuration for VAMDC Discovery

Provides centralized logging setup for the discovery library.
"""

import logging
import sys


def setup_logging(level: str = "INFO", debug: bool = False) -> logging.Logger:
    """
    Setup logging configuration for VAMDC Discovery.
    
    Progress is logged to stderr so that JSON output on stdout stays clean.
    
    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        debug: Enable debug output
        
    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    
    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            logging.StreamHandler(sys.stderr)
        ]
    )
    
    logger = logging.getLogger('vamdc_discovery')
    
    if debug:
        logger.setLevel(logging.DEBUG)
    
    return logger

