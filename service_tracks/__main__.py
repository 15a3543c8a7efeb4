from service_tracks.app.main import main

main()
