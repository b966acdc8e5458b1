from transcode_worker.main import main

main()
