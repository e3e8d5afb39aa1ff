"""
pyvtablefinder
Main module for vtable detection on PE images
"""

import logging

import pefile

from . import vtable_finder
from . import vtf_config
from . import vtf_context
from . import vtf_utils_pe

log = logging.getLogger(__name__)


def run_vtf(target, config=None, progress_callback=None):
    """Detect vtables in a PE file path or pefile.PE, returning the filled Context"""
    if config is None:
        config = vtf_config.vtf_config()
    
    if not config.verbose:
        return _run(target, config, progress_callback)
    
    # Debug logging only for the duration of this call
    pkg_log = logging.getLogger(__package__)
    old_level = pkg_log.level
    pkg_log.setLevel(logging.DEBUG)
    try:
        return _run(target, config, progress_callback)
    finally:
        pkg_log.setLevel(old_level)


def _run(target, config, progress_callback):
    def update_progress(message, percent=None):
        """Log progress and forward it to the callback"""
        log.info(message)
        if progress_callback:
            progress_callback(message, percent)
    
    update_progress("Starting pyvtablefinder", 0)
    
    try:
        if isinstance(target, pefile.PE):
            pe = target
        else:
            update_progress(f"Loading {target}...", 5)
            pe = vtf_utils_pe.load_pe(target)
        
        # Decode the code section up front, this is the slow part
        update_progress("Decoding code section...", 10)
        context = vtf_context.Context.from_pe(pe, config)
        
        update_progress("Scanning for vtables...", 60)
        vtables = vtable_finder.find_vtables(context)
    except Exception as e:
        log.error(f"pyvtablefinder error: {e}")
        raise
    
    if vtables:
        update_progress(f"Found {len(vtables)} vtables", 90)
        if config.show:
            vtable_finder.vtable_finder.show(context)
    else:
        update_progress("No vtables found", 90)
        log.warning("No vtables found. Binary might not be a C++ program or might not use virtual methods.")
    
    update_progress("pyvtablefinder analysis complete", 100)
    return context
