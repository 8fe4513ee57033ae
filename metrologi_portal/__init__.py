"""
Metrologi portal: admin back-office of a legal metrology office.

Admins review calibration service requests (permohonan), keep the
register of market businesses and their measuring equipment, publish
articles and follow calibration expiry notifications.
"""
