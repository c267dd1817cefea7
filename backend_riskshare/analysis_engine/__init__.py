"""
Analysis engine package - incoming and outgoing risk series.

Consumes activities, cohabitations and persons from the profile store,
resolves per-person risk (imported peer certificates or the point
calculator), and convolves daily incoming risk into contagiousness.

Modules: models, overlap, calculator, district_data, person_risk, risk_propagation.
"""
