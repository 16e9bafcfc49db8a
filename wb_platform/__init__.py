# WatchBridge platform: config, lookup keys and the SIMKL watched-state importer.
