"""
Utils
=====

Utility routines used across PyLSRTM:

    ricker                          Ricker wavelet.
    time_axis                       Time axis from the stability factor.
    wavelet_spectrum                Spectrum of a time-domain wavelet.
    active_frequencies              Frequencies with significant energy.
    surface_array                   Shot/receiver deployment on the surface.
    grid_indices                    Indices on the padded grid.
    point_sources                   Batch of point sources.
    extend_boundary                 Pad a model for the absorbing boundary.
    crop_boundary                   Remove the absorbing boundary.
    vel2slowsq                      Velocity to squared slowness.
    slowsq2vel                      Squared slowness to velocity.

"""
