"""
GOK Mill Operations Dashboard

Analytics backend that turns the operators' Excel reports (shift technical
journal, water consumption, downtime history) into dated records, green /
yellow / red signals and a hazard register.

To swap the in-memory store for a database:
    Implement the RecordStore methods used by ingest.ingest_workbook
    (upsert by natural key, create-and-link, replace_dates, read accessors)
    on top of the database client. Parsers and the signal engine are unchanged.

To connect a web front end:
    Call dashboard.get_dashboard_data(store, date_from, date_to) for charts
    and dashboard.get_signal_summary(store, thresholds, date_from, date_to)
    for the signal cards and priority list.

To tune signals or hazard keywords:
    Edit config/thresholds.json; it is read by config.load_thresholds and
    passed explicitly to the detector and the signal engine.
"""
